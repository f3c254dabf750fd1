"""
Alignment and sizing solver for one grid level.
"""

# local repo modules
import panel_composer.blocks
import panel_composer.config
import panel_composer.errors


Rect = panel_composer.blocks.Rect
Cell = panel_composer.blocks.Cell
GridSpec = panel_composer.blocks.GridSpec
StructuralValidationError = panel_composer.errors.StructuralValidationError
UnresolvableSizeError = panel_composer.errors.UnresolvableSizeError

ALIGN_ANCHORS = panel_composer.config.ALIGN_ANCHORS
ALIGN_MODES = panel_composer.config.ALIGN_MODES

# (x offset, y offset) per child, None when the child declares no anchor
ChildAnchors = tuple[float | None, float | None]


#============================================
def compute_align_offset(available: float, size: float, align: str) -> float:
	"""
	Compute a justification offset.

	Args:
		available: Available dimension.
		size: Size of the item being justified.
		align: Alignment string.

	Returns:
		Offset from the leading edge.
	"""
	normalized = align.strip().upper()
	if normalized in ("LEFT", "TOP"):
		return 0.0
	if normalized in ("RIGHT", "BOTTOM"):
		return max(0.0, available - size)
	return max(0.0, (available - size) / 2.0)


#============================================
def validate_grid(spec: GridSpec, cells: list[Cell], path: str) -> None:
	"""
	Check grid structure before any layout work.

	Args:
		spec: Grid specification.
		cells: Child cells in declaration order.
		path: Grid path for error messages.
	"""
	if spec.rows <= 0 or spec.columns <= 0:
		raise StructuralValidationError(
			f"grid needs at least one row and column, got {spec.rows}x{spec.columns}",
			path,
		)
	for label, weights, count in (
		("row", spec.resolved_row_weights(), spec.rows),
		("column", spec.resolved_column_weights(), spec.columns),
	):
		if len(weights) != count:
			raise StructuralValidationError(
				f"{len(weights)} {label} weights for {count} {label}s",
				path,
			)
		for weight in weights:
			if weight < 0.0:
				raise StructuralValidationError(f"negative {label} weight {weight}", path)
	for axis_name, mode in (("x", spec.align_x), ("y", spec.align_y)):
		if mode not in ALIGN_MODES:
			raise StructuralValidationError(f"unknown {axis_name} alignment mode '{mode}'", path)

	occupied: dict[tuple[int, int], int] = {}
	for index, cell in enumerate(cells):
		if cell.row_span < 1 or cell.column_span < 1:
			raise StructuralValidationError(f"child {index} has a span below 1", path)
		if (
			cell.row < 0
			or cell.column < 0
			or cell.row + cell.row_span > spec.rows
			or cell.column + cell.column_span > spec.columns
		):
			raise StructuralValidationError(
				f"child {index} at row {cell.row} column {cell.column} "
				f"is outside the {spec.rows}x{spec.columns} grid",
				path,
			)
		for row in range(cell.row, cell.row + cell.row_span):
			for col in range(cell.column, cell.column + cell.column_span):
				if (row, col) in occupied:
					raise StructuralValidationError(
						f"child {index} overlaps child {occupied[(row, col)]} at row {row} column {col}",
						path,
					)
				occupied[(row, col)] = index


#============================================
def compute_track_sizes(total: float, weights: tuple[float, ...], path: str) -> list[float]:
	"""
	Divide a total length between tracks by relative weight.

	Args:
		total: Available length.
		weights: Relative weight per track.
		path: Grid path for error messages.

	Returns:
		Size per track.
	"""
	weight_sum = sum(weights)
	if weight_sum <= 0.0:
		raise UnresolvableSizeError("track weights sum to zero", path)
	return [total * weight / weight_sum for weight in weights]


#============================================
def compute_track_offsets(sizes: list[float]) -> list[float]:
	"""
	Compute the leading edge of each track.

	Args:
		sizes: Track sizes.

	Returns:
		Offsets, one more than the number of tracks.
	"""
	offsets = [0.0]
	for size in sizes:
		offsets.append(offsets[-1] + size)
	return offsets


#============================================
def compute_cell_rect(column_offsets: list[float], row_offsets: list[float], cell: Cell) -> Rect:
	"""
	Compute the rect covered by a cell and its spans.

	Args:
		column_offsets: Column track offsets.
		row_offsets: Row track offsets.
		cell: Cell occupancy.

	Returns:
		Rect relative to the grid origin.
	"""
	x0 = column_offsets[cell.column]
	x1 = column_offsets[cell.column + cell.column_span]
	y0 = row_offsets[cell.row]
	y1 = row_offsets[cell.row + cell.row_span]
	return Rect(x0, y0, x1 - x0, y1 - y0)


#============================================
def compute_group_offsets(
	cells: list[Cell],
	anchors: list[ChildAnchors],
	axis: str,
) -> dict[int, float]:
	"""
	Find the largest anchor offset per leading column or row.

	Args:
		cells: Child cells.
		anchors: Anchor offsets per child.
		axis: "x" groups by column, "y" groups by row.

	Returns:
		Max offset keyed by leading track index.
	"""
	axis_index = 0 if axis == "x" else 1
	groups: dict[int, float] = {}
	for cell, child_anchors in zip(cells, anchors):
		offset = child_anchors[axis_index]
		if offset is None:
			continue
		track = cell.column if axis == "x" else cell.row
		groups[track] = max(groups.get(track, offset), offset)
	return groups


#============================================
def compute_alignment_padding(
	spec: GridSpec,
	cells: list[Cell],
	anchors: list[ChildAnchors],
) -> list[tuple[float, float]]:
	"""
	Compute the leading padding that lines up anchors per track.

	Args:
		spec: Grid specification.
		cells: Child cells.
		anchors: Anchor offsets per child.

	Returns:
		(pad_x, pad_y) per child.
	"""
	x_groups: dict[int, float] = {}
	y_groups: dict[int, float] = {}
	if spec.align_x == ALIGN_ANCHORS:
		x_groups = compute_group_offsets(cells, anchors, "x")
	if spec.align_y == ALIGN_ANCHORS:
		y_groups = compute_group_offsets(cells, anchors, "y")

	padding: list[tuple[float, float]] = []
	for cell, (offset_x, offset_y) in zip(cells, anchors):
		pad_x = 0.0
		pad_y = 0.0
		if offset_x is not None and cell.column in x_groups:
			pad_x = x_groups[cell.column] - offset_x
		if offset_y is not None and cell.row in y_groups:
			pad_y = y_groups[cell.row] - offset_y
		padding.append((pad_x, pad_y))
	return padding


#============================================
def compute_leading_anchor(
	spec: GridSpec,
	cells: list[Cell],
	anchors: list[ChildAnchors],
	axis: str,
) -> float | None:
	"""
	Anchor a whole grid exposes to its parent.

	Only an aligned axis exposes an anchor: the shared offset of the
	first column (x) or first row (y).

	Args:
		spec: Grid specification.
		cells: Child cells.
		anchors: Anchor offsets per child.
		axis: "x" or "y".

	Returns:
		Offset from the grid's leading edge, or None.
	"""
	mode = spec.align_x if axis == "x" else spec.align_y
	if mode != ALIGN_ANCHORS:
		return None
	groups = compute_group_offsets(cells, anchors, axis)
	return groups.get(0)


#============================================
def natural_size(
	spec: GridSpec,
	cells: list[Cell],
	sizes: list[tuple[float, float]],
	padding: list[tuple[float, float]],
) -> tuple[float, float]:
	"""
	Compute the smallest grid size that fits every child.

	Used when a grid has no size imposed from above.

	Args:
		spec: Grid specification.
		cells: Child cells.
		sizes: Intrinsic (width, height) per child.
		padding: Alignment padding per child.

	Returns:
		(width, height).
	"""
	column_weights = spec.resolved_column_weights()
	row_weights = spec.resolved_row_weights()
	total_columns = sum(column_weights)
	total_rows = sum(row_weights)
	width = 0.0
	height = 0.0
	for cell, (child_width, child_height), (pad_x, pad_y) in zip(cells, sizes, padding):
		spanned_columns = sum(column_weights[cell.column:cell.column + cell.column_span])
		spanned_rows = sum(row_weights[cell.row:cell.row + cell.row_span])
		if spanned_columns > 0.0:
			width = max(width, (child_width + pad_x) * total_columns / spanned_columns)
		if spanned_rows > 0.0:
			height = max(height, (child_height + pad_y) * total_rows / spanned_rows)
	return (width, height)


#============================================
def solve_grid(
	spec: GridSpec,
	cells: list[Cell],
	anchors: list[ChildAnchors],
	width: float,
	height: float,
	path: str,
) -> list[tuple[Rect, Rect]]:
	"""
	Compute cell and content rects for every child of a grid.

	Args:
		spec: Grid specification.
		cells: Child cells.
		anchors: Anchor offsets per child.
		width: Available grid width.
		height: Available grid height.
		path: Grid path for error messages.

	Returns:
		(cell rect, content rect) per child, relative to the grid origin.
	"""
	if width <= 0.0 or height <= 0.0:
		raise UnresolvableSizeError(f"grid offered {width:.2f}x{height:.2f}", path)

	column_sizes = compute_track_sizes(width, spec.resolved_column_weights(), path)
	row_sizes = compute_track_sizes(height, spec.resolved_row_weights(), path)
	column_offsets = compute_track_offsets(column_sizes)
	row_offsets = compute_track_offsets(row_sizes)
	padding = compute_alignment_padding(spec, cells, anchors)

	results: list[tuple[Rect, Rect]] = []
	for index, cell in enumerate(cells):
		cell_rect = compute_cell_rect(column_offsets, row_offsets, cell)
		pad_x, pad_y = padding[index]
		content = Rect(
			cell_rect.x + pad_x,
			cell_rect.y + pad_y,
			cell_rect.width - pad_x,
			cell_rect.height - pad_y,
		)
		if content.width <= 0.0 or content.height <= 0.0:
			raise UnresolvableSizeError(
				f"child {index} left with {content.width:.2f}x{content.height:.2f}",
				path,
			)
		results.append((cell_rect, content))
	return results
