"""
Composition data model: blocks, grids, labels and legend groups.
"""

# Standard Library
import dataclasses
import typing

# local repo modules
import panel_composer.config


DEFAULT_ANCHOR = panel_composer.config.DEFAULT_ANCHOR
DEFAULT_LABEL_CORNER = panel_composer.config.DEFAULT_LABEL_CORNER
ALIGN_NONE = panel_composer.config.ALIGN_NONE


@dataclasses.dataclass(frozen=True)
class Rect:
	x: float
	y: float
	width: float
	height: float

	@property
	def right(self) -> float:
		return self.x + self.width

	@property
	def bottom(self) -> float:
		return self.y + self.height

	@property
	def area(self) -> float:
		return self.width * self.height

	def translate(self, dx: float, dy: float) -> "Rect":
		return Rect(self.x + dx, self.y + dy, self.width, self.height)

	def union(self, other: "Rect") -> "Rect":
		x0 = min(self.x, other.x)
		y0 = min(self.y, other.y)
		x1 = max(self.right, other.right)
		y1 = max(self.bottom, other.bottom)
		return Rect(x0, y0, x1 - x0, y1 - y0)

	def as_tuple(self) -> tuple[float, float, float, float]:
		return (self.x, self.y, self.width, self.height)


@dataclasses.dataclass(frozen=True)
class Anchor:
	axis: str
	offset: float
	name: str = DEFAULT_ANCHOR


@dataclasses.dataclass(frozen=True)
class LegendEntry:
	label: str
	style: dict[str, str] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class Legend:
	entries: tuple[LegendEntry, ...]
	side: str = "right"
	width: float = 0.0
	height: float = 0.0
	title: str = ""
	handle: typing.Any = None
	stripped_handle: typing.Any = None

	def labels(self) -> list[str]:
		return [entry.label for entry in self.entries]


@dataclasses.dataclass(frozen=True)
class Block:
	"""
	One opaque renderable panel.

	The handle is only read by the export step. Blocks are never edited
	in place; legend extraction returns a replaced copy.
	"""
	width: float
	height: float
	anchors: tuple[Anchor, ...] = ()
	legend: Legend | None = None
	suppressed_legend: Legend | None = None
	handle: typing.Any = None
	name: str = ""

	def anchor_offset(self, axis: str, name: str = DEFAULT_ANCHOR) -> float | None:
		"""
		Look up an anchor offset.

		Args:
			axis: "x" or "y".
			name: Anchor name.

		Returns:
			Offset from the leading edge, or None when undeclared.
		"""
		for anchor in self.anchors:
			if anchor.axis == axis and anchor.name == name:
				return anchor.offset
		return None

	def legend_content(self) -> Legend | None:
		if self.legend is not None:
			return self.legend
		return self.suppressed_legend

	def has_legend_content(self) -> bool:
		return self.legend_content() is not None


@dataclasses.dataclass(frozen=True)
class Cell:
	child: int
	row: int
	column: int
	row_span: int = 1
	column_span: int = 1


@dataclasses.dataclass(frozen=True)
class Label:
	child: int
	text: str
	corner: str = DEFAULT_LABEL_CORNER
	font_size: float | None = None


@dataclasses.dataclass(frozen=True)
class LegendGroup:
	members: tuple[int, ...]
	position: str = "right"


@dataclasses.dataclass(frozen=True)
class GridSpec:
	rows: int
	columns: int
	row_weights: tuple[float, ...] | None = None
	column_weights: tuple[float, ...] | None = None
	align_x: str = ALIGN_NONE
	align_y: str = ALIGN_NONE
	anchor: str = DEFAULT_ANCHOR
	name: str = ""

	def resolved_row_weights(self) -> tuple[float, ...]:
		if self.row_weights is None:
			return tuple(1.0 for _ in range(self.rows))
		return tuple(self.row_weights)

	def resolved_column_weights(self) -> tuple[float, ...]:
		if self.column_weights is None:
			return tuple(1.0 for _ in range(self.columns))
		return tuple(self.column_weights)


@dataclasses.dataclass(frozen=True)
class Placement:
	child: int | None
	node_id: int | None
	path: str
	block: Block
	cell: Rect
	content: Rect


@dataclasses.dataclass(frozen=True)
class LabelAnnotation:
	text: str
	corner: str
	path: str
	x: float
	y: float
	width: float
	height: float
	font_size: float

	def translate(self, dx: float, dy: float) -> "LabelAnnotation":
		return dataclasses.replace(self, x=self.x + dx, y=self.y + dy)


@dataclasses.dataclass(frozen=True)
class ComposedHandle:
	placements: tuple[Placement, ...]
	labels: tuple[LabelAnnotation, ...] = ()
