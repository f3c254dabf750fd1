"""
Composition tree builder.

A composition is an arena of nodes addressed by integer id. Grid nodes
refer to their children by id, and each node has at most one parent.
Resolution runs in two depth-first passes over the tree:

1. prepare: validate every grid, extract shared legends, and compute the
   anchors and natural size each grid exposes to its parent.
2. resolve: divide the space offered by the parent, place children, and
   fold each nested grid into a single composed Block before its parent
   places it.

Labels are resolved after their grid's placements exist and never feed
back into sizing.
"""

# Standard Library
import concurrent.futures
import dataclasses
import typing

# local repo modules
import panel_composer.blocks
import panel_composer.config
import panel_composer.errors
import panel_composer.labels
import panel_composer.legend
import panel_composer.solver


Block = panel_composer.blocks.Block
Anchor = panel_composer.blocks.Anchor
Cell = panel_composer.blocks.Cell
ComposedHandle = panel_composer.blocks.ComposedHandle
GridSpec = panel_composer.blocks.GridSpec
Label = panel_composer.blocks.Label
LabelAnnotation = panel_composer.blocks.LabelAnnotation
LegendGroup = panel_composer.blocks.LegendGroup
Placement = panel_composer.blocks.Placement
Rect = panel_composer.blocks.Rect
LegendExtraction = panel_composer.legend.LegendExtraction
StructuralValidationError = panel_composer.errors.StructuralValidationError
UnresolvableSizeError = panel_composer.errors.UnresolvableSizeError


@dataclasses.dataclass(frozen=True)
class BlockNode:
	block: Block


@dataclasses.dataclass(frozen=True)
class GridNode:
	spec: GridSpec
	cells: tuple[Cell, ...]
	labels: tuple[Label, ...] = ()
	legend_group: LegendGroup | None = None


Node = BlockNode | GridNode


@dataclasses.dataclass
class _PreparedGrid:
	blocks: dict[int, Block]
	anchors: list[tuple[float | None, float | None]]
	extraction: LegendExtraction | None
	anchor_x: float | None
	anchor_y: float | None
	width: float
	height: float


@dataclasses.dataclass(frozen=True)
class ResolvedComposition:
	block: Block
	labels: tuple[LabelAnnotation, ...]
	unit: str = "pt"

	def leaves(self) -> typing.Iterator[Placement]:
		"""
		Yield every non-composed placement with absolute rects.
		"""
		yield from _iter_leaves(self.block, 0.0, 0.0)

	def rects(self) -> dict[str, Rect]:
		"""
		Map each leaf path to its absolute content rect.
		"""
		return {placement.path: placement.content for placement in self.leaves()}


#============================================
def _iter_leaves(block: Block, origin_x: float, origin_y: float) -> typing.Iterator[Placement]:
	if not isinstance(block.handle, ComposedHandle):
		return
	for placement in block.handle.placements:
		content = placement.content.translate(origin_x, origin_y)
		if isinstance(placement.block.handle, ComposedHandle):
			yield from _iter_leaves(placement.block, content.x, content.y)
			continue
		yield dataclasses.replace(
			placement,
			cell=placement.cell.translate(origin_x, origin_y),
			content=content,
		)


#============================================
def collect_labels(block: Block, origin_x: float = 0.0, origin_y: float = 0.0) -> list[LabelAnnotation]:
	"""
	Flatten label annotations of a composed block into absolute positions.

	Args:
		block: Composed block.
		origin_x: Absolute x of the block.
		origin_y: Absolute y of the block.

	Returns:
		Label annotations in tree order, outer grids first.
	"""
	if not isinstance(block.handle, ComposedHandle):
		return []
	annotations = [label.translate(origin_x, origin_y) for label in block.handle.labels]
	for placement in block.handle.placements:
		annotations.extend(
			collect_labels(placement.block, origin_x + placement.content.x, origin_y + placement.content.y)
		)
	return annotations


class Composition:
	"""
	Declarative tree of grids and blocks resolved into one composed block.
	"""

	def __init__(self, unit: str = "pt") -> None:
		"""
		Args:
			unit: Layout unit; font-measured labels and legends are converted into it.
		"""
		self.nodes: list[Node] = []
		self.root: int | None = None
		self.unit = unit
		self.scale = panel_composer.config.unit_scale(unit)

	#============================================
	def add_block(self, block: Block) -> int:
		"""
		Add a leaf block.

		Args:
			block: Rendered block.

		Returns:
			Node id.
		"""
		self.nodes.append(BlockNode(block))
		return len(self.nodes) - 1

	#============================================
	def add_grid(
		self,
		spec: GridSpec,
		cells: list[Cell],
		labels: list[Label] | None = None,
		legend_group: LegendGroup | None = None,
	) -> int:
		"""
		Add a grid node.

		Args:
			spec: Grid specification.
			cells: Child cells; their order defines child indices.
			labels: Corner labels for direct children.
			legend_group: Optional shared legend declaration.

		Returns:
			Node id.
		"""
		node = GridNode(
			spec=spec,
			cells=tuple(cells),
			labels=tuple(labels or ()),
			legend_group=legend_group,
		)
		self.nodes.append(node)
		return len(self.nodes) - 1

	#============================================
	def set_root(self, node_id: int) -> None:
		self.root = node_id

	#============================================
	def node_name(self, node_id: int, index: int) -> str:
		node = self.nodes[node_id]
		if isinstance(node, BlockNode) and node.block.name:
			return node.block.name
		if isinstance(node, GridNode) and node.spec.name:
			return node.spec.name
		return f"child{index}"

	#============================================
	def child_paths(self, node: GridNode, path: str) -> list[str]:
		"""
		Build a unique path for every child of a grid.

		Repeated names, and the name "legend" in a grid with a shared
		legend, get the child index appended.

		Args:
			node: Grid node.
			path: Grid path.

		Returns:
			Child paths in cell order.
		"""
		taken: set[str] = set()
		if node.legend_group is not None:
			taken.add("legend")
		paths: list[str] = []
		for index, cell in enumerate(node.cells):
			name = self.node_name(cell.child, index)
			while name in taken:
				name = f"{name}-{index}"
			taken.add(name)
			paths.append(f"{path}/{name}")
		return paths

	#============================================
	def root_path(self) -> str:
		node = self.nodes[self.root]
		return node.spec.name or "root"

	#============================================
	def validate(self) -> None:
		"""
		Check the node graph and every grid declaration.
		"""
		if self.root is None:
			raise StructuralValidationError("composition has no root")
		if self.root < 0 or self.root >= len(self.nodes):
			raise StructuralValidationError(f"root {self.root} is not a node")
		if not isinstance(self.nodes[self.root], GridNode):
			raise StructuralValidationError("composition root must be a grid")

		parents: dict[int, int] = {}
		for node_id, node in enumerate(self.nodes):
			if not isinstance(node, GridNode):
				continue
			for cell in node.cells:
				if cell.child < 0 or cell.child >= len(self.nodes):
					raise StructuralValidationError(f"grid {node_id} references unknown node {cell.child}")
				if cell.child == self.root:
					raise StructuralValidationError(f"grid {node_id} references the root node")
				if cell.child in parents:
					raise StructuralValidationError(
						f"node {cell.child} is placed by both grid {parents[cell.child]} and grid {node_id}"
					)
				parents[cell.child] = node_id
		self._validate_grid(self.root, self.root_path(), set())

	#============================================
	def _validate_grid(self, node_id: int, path: str, visiting: set[int]) -> None:
		if node_id in visiting:
			raise StructuralValidationError("grid contains itself", path)
		visiting.add(node_id)
		node = self.nodes[node_id]
		panel_composer.solver.validate_grid(node.spec, list(node.cells), path)
		panel_composer.labels.validate_labels(list(node.labels), len(node.cells), path)
		if node.legend_group is not None:
			panel_composer.legend.parse_legend_position(node.legend_group.position, path)
			members = node.legend_group.members
			if len(set(members)) != len(members):
				raise StructuralValidationError("legend group lists a child twice", path)
			for member in members:
				if member < 0 or member >= len(node.cells):
					raise StructuralValidationError(f"legend group member {member} is not a child", path)
				if not isinstance(self.nodes[node.cells[member].child], BlockNode):
					raise StructuralValidationError(f"legend group member {member} is not a block", path)
		for cell, child_path in zip(node.cells, self.child_paths(node, path)):
			if isinstance(self.nodes[cell.child], GridNode):
				self._validate_grid(cell.child, child_path, visiting)
		visiting.discard(node_id)

	#============================================
	def _prepare(self, node_id: int, path: str, prepared: dict[int, _PreparedGrid]) -> _PreparedGrid:
		node = self.nodes[node_id]
		spec = node.spec
		cells = list(node.cells)

		blocks: dict[int, Block] = {}
		for index, cell in enumerate(cells):
			child = self.nodes[cell.child]
			if isinstance(child, BlockNode):
				blocks[index] = child.block

		extraction = None
		if node.legend_group is not None:
			members = list(node.legend_group.members)
			extraction = panel_composer.legend.extract_shared_legend(
				[blocks[member] for member in members],
				node.legend_group.position,
				path,
				self.scale,
			)
			for member, block in zip(members, extraction.blocks):
				blocks[member] = block

		anchors: list[tuple[float | None, float | None]] = []
		sizes: list[tuple[float, float]] = []
		child_paths = self.child_paths(node, path)
		for index, cell in enumerate(cells):
			if index in blocks:
				block = blocks[index]
				anchors.append((block.anchor_offset("x", spec.anchor), block.anchor_offset("y", spec.anchor)))
				sizes.append((block.width, block.height))
				continue
			child = self._prepare(cell.child, child_paths[index], prepared)
			anchors.append((child.anchor_x, child.anchor_y))
			sizes.append((child.width, child.height))

		padding = panel_composer.solver.compute_alignment_padding(spec, cells, anchors)
		width, height = panel_composer.solver.natural_size(spec, cells, sizes, padding)
		anchor_x = panel_composer.solver.compute_leading_anchor(spec, cells, anchors, "x")
		anchor_y = panel_composer.solver.compute_leading_anchor(spec, cells, anchors, "y")

		legend_block = extraction.legend_block if extraction is not None else None
		if legend_block is not None:
			if extraction.side in ("left", "right"):
				width += legend_block.width
				height = max(height, legend_block.height)
				if extraction.side == "left" and anchor_x is not None:
					anchor_x += legend_block.width
			else:
				height += legend_block.height
				width = max(width, legend_block.width)
				if extraction.side == "top" and anchor_y is not None:
					anchor_y += legend_block.height

		result = _PreparedGrid(
			blocks=blocks,
			anchors=anchors,
			extraction=extraction,
			anchor_x=anchor_x,
			anchor_y=anchor_y,
			width=width,
			height=height,
		)
		prepared[node_id] = result
		return result

	#============================================
	def _split_legend_strip(
		self,
		extraction: LegendExtraction | None,
		width: float,
		height: float,
		path: str,
	) -> tuple[Rect, Placement | None]:
		"""
		Carve the shared legend strip out of a grid's area.

		Args:
			extraction: Legend extraction for the grid, if any.
			width: Grid width.
			height: Grid height.
			path: Grid path.

		Returns:
			Tuple of (area left for the children, legend placement or None).
		"""
		inner = Rect(0.0, 0.0, width, height)
		if extraction is None or extraction.legend_block is None:
			return (inner, None)
		legend_block = extraction.legend_block
		side = extraction.side
		if side == "right":
			inner = Rect(0.0, 0.0, width - legend_block.width, height)
			strip = Rect(inner.right, 0.0, legend_block.width, height)
		elif side == "left":
			inner = Rect(legend_block.width, 0.0, width - legend_block.width, height)
			strip = Rect(0.0, 0.0, legend_block.width, height)
		elif side == "bottom":
			inner = Rect(0.0, 0.0, width, height - legend_block.height)
			strip = Rect(0.0, inner.bottom, width, legend_block.height)
		else:
			inner = Rect(0.0, legend_block.height, width, height - legend_block.height)
			strip = Rect(0.0, 0.0, width, legend_block.height)
		if inner.width <= 0.0 or inner.height <= 0.0:
			raise UnresolvableSizeError("no space left beside the shared legend", path)

		legend_width = min(legend_block.width, strip.width)
		legend_height = min(legend_block.height, strip.height)
		if side in ("left", "right"):
			offset_x = 0.0
			offset_y = panel_composer.solver.compute_align_offset(strip.height, legend_height, extraction.justify)
		else:
			offset_x = panel_composer.solver.compute_align_offset(strip.width, legend_width, extraction.justify)
			offset_y = 0.0
		content = Rect(strip.x + offset_x, strip.y + offset_y, legend_width, legend_height)
		placement = Placement(
			child=None,
			node_id=None,
			path=f"{path}/legend",
			block=legend_block,
			cell=strip,
			content=content,
		)
		return (inner, placement)

	#============================================
	def _resolve_grid(
		self,
		node_id: int,
		width: float,
		height: float,
		path: str,
		prepared: dict[int, _PreparedGrid],
	) -> Block:
		if width <= 0.0 or height <= 0.0:
			raise UnresolvableSizeError(f"grid offered {width:.2f}x{height:.2f}", path)
		node = self.nodes[node_id]
		prep = prepared[node_id]
		cells = list(node.cells)

		inner, legend_placement = self._split_legend_strip(prep.extraction, width, height, path)
		rects = panel_composer.solver.solve_grid(
			node.spec,
			cells,
			prep.anchors,
			inner.width,
			inner.height,
			path,
		)

		placements: list[Placement] = []
		child_paths = self.child_paths(node, path)
		for index, (cell, (cell_rect, content)) in enumerate(zip(cells, rects)):
			cell_rect = cell_rect.translate(inner.x, inner.y)
			content = content.translate(inner.x, inner.y)
			child_path = child_paths[index]
			if index in prep.blocks:
				block = prep.blocks[index]
			else:
				# nested grids become a single block before placement
				block = self._resolve_grid(cell.child, content.width, content.height, child_path, prepared)
			placements.append(
				Placement(
					child=index,
					node_id=cell.child,
					path=child_path,
					block=block,
					cell=cell_rect,
					content=content,
				)
			)
		if legend_placement is not None:
			placements.append(legend_placement)

		annotations = panel_composer.labels.overlay_labels(list(node.labels), placements, path, scale=self.scale)

		anchors: list[Anchor] = []
		if prep.anchor_x is not None:
			anchors.append(Anchor("x", prep.anchor_x, node.spec.anchor))
		if prep.anchor_y is not None:
			anchors.append(Anchor("y", prep.anchor_y, node.spec.anchor))
		return Block(
			width=width,
			height=height,
			anchors=tuple(anchors),
			handle=ComposedHandle(placements=tuple(placements), labels=tuple(annotations)),
			name=path,
		)

	#============================================
	def natural_size(self) -> tuple[float, float]:
		"""
		Compute the unconstrained size of the root grid.

		Returns:
			(width, height).
		"""
		self.validate()
		prepared: dict[int, _PreparedGrid] = {}
		root = self._prepare(self.root, self.root_path(), prepared)
		return (root.width, root.height)

	#============================================
	def resolve(self, width: float | None = None, height: float | None = None) -> ResolvedComposition:
		"""
		Resolve the whole tree into one composed block.

		Args:
			width: Output width; natural width when None.
			height: Output height; natural height when None.

		Returns:
			ResolvedComposition.
		"""
		self.validate()
		path = self.root_path()
		prepared: dict[int, _PreparedGrid] = {}
		root = self._prepare(self.root, path, prepared)
		if width is None:
			width = root.width
		if height is None:
			height = root.height
		block = self._resolve_grid(self.root, width, height, path, prepared)
		return ResolvedComposition(block=block, labels=tuple(collect_labels(block)), unit=self.unit)


#============================================
def resolve_compositions(
	jobs: list[tuple[Composition, float | None, float | None]],
	max_workers: int | None = None,
) -> list[ResolvedComposition]:
	"""
	Resolve independent compositions on a thread pool.

	Args:
		jobs: (composition, width, height) per figure.
		max_workers: Thread pool size.

	Returns:
		Resolved compositions in job order.
	"""
	with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
		futures = [executor.submit(composition.resolve, width, height) for composition, width, height in jobs]
		return [future.result() for future in futures]
