"""
Shared legend extraction for sibling blocks.
"""

# Standard Library
import dataclasses

# PIP3 modules
import reportlab.pdfbase.pdfmetrics

# local repo modules
import panel_composer.blocks
import panel_composer.config
import panel_composer.errors


Block = panel_composer.blocks.Block
Legend = panel_composer.blocks.Legend
StructuralValidationError = panel_composer.errors.StructuralValidationError
AmbiguousLegendError = panel_composer.errors.AmbiguousLegendError

LEGEND_SIDES = panel_composer.config.LEGEND_SIDES
LEGEND_NONE = panel_composer.config.LEGEND_NONE
LEGEND_SWATCH_SIZE = panel_composer.config.LEGEND_SWATCH_SIZE
LEGEND_ROW_SPACING = panel_composer.config.LEGEND_ROW_SPACING
LEGEND_PADDING = panel_composer.config.LEGEND_PADDING
LEGEND_TEXT_SIZE = panel_composer.config.LEGEND_TEXT_SIZE
DEFAULT_FONT_REGULAR = panel_composer.config.DEFAULT_FONT_REGULAR
DEFAULT_FONT_BOLD = panel_composer.config.DEFAULT_FONT_BOLD

JUSTIFY_BY_SIDE = {
	"right": ("top", "center", "bottom"),
	"left": ("top", "center", "bottom"),
	"top": ("left", "center", "right"),
	"bottom": ("left", "center", "right"),
}


@dataclasses.dataclass(frozen=True)
class LegendHandle:
	legend: Legend


@dataclasses.dataclass(frozen=True)
class LegendExtraction:
	blocks: tuple[Block, ...]
	legend_block: Block | None
	side: str
	justify: str


#============================================
def parse_legend_position(position: str, path: str = "") -> tuple[str, str]:
	"""
	Split a legend position into side and justification.

	Args:
		position: Position like "right", "bottom-right" or "none".
		path: Grid path for error messages.

	Returns:
		Tuple of (side, justify).
	"""
	normalized = position.strip().lower()
	if normalized == LEGEND_NONE:
		return (LEGEND_NONE, "center")
	tokens = normalized.split("-")
	side = tokens[0]
	if side not in LEGEND_SIDES or len(tokens) > 2:
		raise StructuralValidationError(f"invalid legend position '{position}'", path)
	justify = "center"
	if len(tokens) == 2:
		justify = tokens[1]
	if justify not in JUSTIFY_BY_SIDE[side]:
		raise StructuralValidationError(f"invalid legend position '{position}'", path)
	return (side, justify)


#============================================
def measure_legend(legend: Legend) -> tuple[float, float]:
	"""
	Measure a legend drawn as swatch plus text rows.

	Args:
		legend: Legend content.

	Returns:
		(width, height) in points.
	"""
	row_height = max(LEGEND_SWATCH_SIZE, LEGEND_TEXT_SIZE)
	text_width = 0.0
	for label in legend.labels():
		width = reportlab.pdfbase.pdfmetrics.stringWidth(label, DEFAULT_FONT_REGULAR, LEGEND_TEXT_SIZE)
		text_width = max(text_width, width)
	width = LEGEND_SWATCH_SIZE + LEGEND_ROW_SPACING + text_width
	rows = len(legend.entries)
	height = rows * row_height + max(0, rows - 1) * LEGEND_ROW_SPACING
	if legend.title:
		title_width = reportlab.pdfbase.pdfmetrics.stringWidth(legend.title, DEFAULT_FONT_BOLD, LEGEND_TEXT_SIZE)
		width = max(width, title_width)
		height += LEGEND_TEXT_SIZE + LEGEND_ROW_SPACING
	return (width + 2.0 * LEGEND_PADDING, height + 2.0 * LEGEND_PADDING)


#============================================
def legend_size(legend: Legend, scale: float = 1.0) -> tuple[float, float]:
	"""
	Get the layout size of a legend.

	Declared dimensions win; a missing dimension is measured from the
	entries and converted from points into layout units.

	Args:
		legend: Legend content.
		scale: Points per layout unit.

	Returns:
		(width, height) in layout units.
	"""
	if legend.width > 0.0 and legend.height > 0.0:
		return (legend.width, legend.height)
	measured_width, measured_height = measure_legend(legend)
	width = legend.width if legend.width > 0.0 else measured_width / scale
	height = legend.height if legend.height > 0.0 else measured_height / scale
	return (width, height)


#============================================
def remove_legend(block: Block, path: str = "", scale: float = 1.0) -> Block:
	"""
	Drop the legend strip from a block.

	The suppressed legend keeps the strip size that was removed, so
	renderers can crop the same strip off the panel.

	Args:
		block: Source block.
		path: Block path for error messages.
		scale: Points per layout unit.

	Returns:
		New block without its legend, or the same block if it had none.
	"""
	legend = block.legend
	if legend is None:
		return block
	if legend.side not in LEGEND_SIDES:
		raise StructuralValidationError(f"invalid legend side '{legend.side}'", path)
	strip_width, strip_height = legend_size(legend, scale)
	width = block.width
	height = block.height
	anchors = list(block.anchors)
	if legend.side in ("left", "right"):
		width -= strip_width
	else:
		height -= strip_height
	if width <= 0.0 or height <= 0.0:
		raise StructuralValidationError("legend strip is as large as its block", path)
	# leading-side legends shift the anchors with them
	if legend.side == "left":
		anchors = [
			dataclasses.replace(anchor, offset=anchor.offset - strip_width) if anchor.axis == "x" else anchor
			for anchor in anchors
		]
	elif legend.side == "top":
		anchors = [
			dataclasses.replace(anchor, offset=anchor.offset - strip_height) if anchor.axis == "y" else anchor
			for anchor in anchors
		]
	return dataclasses.replace(
		block,
		width=width,
		height=height,
		anchors=tuple(anchors),
		legend=None,
		suppressed_legend=dataclasses.replace(legend, width=strip_width, height=strip_height),
	)


#============================================
def extract_shared_legend(
	blocks: list[Block],
	position: str,
	path: str = "",
	scale: float = 1.0,
) -> LegendExtraction:
	"""
	Replace sibling legends with one standalone legend block.

	Legends must list the same labels in the same order. Blocks that
	were already extracted pass through unchanged.

	Args:
		blocks: Legend group members.
		position: Declared legend position.
		path: Grid path for error messages.
		scale: Points per layout unit, for legends measured from their entries.

	Returns:
		LegendExtraction.
	"""
	side, justify = parse_legend_position(position, path)
	if not blocks:
		raise StructuralValidationError("legend group has no members", path)
	for index, block in enumerate(blocks):
		if not block.has_legend_content():
			raise StructuralValidationError(f"legend group member {index} has no legend", path)

	shared = blocks[0].legend_content()
	reference = shared.labels()
	for index, block in enumerate(blocks[1:], start=1):
		labels = block.legend_content().labels()
		if labels != reference:
			raise AmbiguousLegendError(
				f"legend of member {index} {labels} differs from member 0 {reference}",
				path,
			)

	stripped = tuple(remove_legend(block, path, scale) for block in blocks)
	legend_block = None
	if side != LEGEND_NONE:
		width, height = legend_size(shared, scale)
		legend_block = Block(
			width=width,
			height=height,
			handle=LegendHandle(shared),
			name="legend",
		)
	return LegendExtraction(blocks=stripped, legend_block=legend_block, side=side, justify=justify)
