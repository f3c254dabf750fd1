"""
Corner label overlay for grid children.
"""

# PIP3 modules
import reportlab.pdfbase.pdfmetrics

# local repo modules
import panel_composer.blocks
import panel_composer.config
import panel_composer.errors


Label = panel_composer.blocks.Label
LabelAnnotation = panel_composer.blocks.LabelAnnotation
Placement = panel_composer.blocks.Placement
Rect = panel_composer.blocks.Rect
StructuralValidationError = panel_composer.errors.StructuralValidationError

DEFAULT_LABEL_FONT = panel_composer.config.DEFAULT_LABEL_FONT
DEFAULT_LABEL_SIZE = panel_composer.config.DEFAULT_LABEL_SIZE
DEFAULT_LABEL_INSET = panel_composer.config.DEFAULT_LABEL_INSET
LABEL_CORNERS = panel_composer.config.LABEL_CORNERS


#============================================
def measure_label(text: str, font_name: str, font_size: float) -> tuple[float, float]:
	"""
	Measure label text from font metrics.

	Args:
		text: Label text.
		font_name: ReportLab font name.
		font_size: Font size in points.

	Returns:
		(width, height) where height spans descent to ascent.
	"""
	width = reportlab.pdfbase.pdfmetrics.stringWidth(text, font_name, font_size)
	ascent = reportlab.pdfbase.pdfmetrics.getAscent(font_name) * font_size / 1000.0
	descent = reportlab.pdfbase.pdfmetrics.getDescent(font_name) * font_size / 1000.0
	return (width, ascent - descent)


#============================================
def place_label(
	corner: str,
	rect: Rect,
	width: float,
	height: float,
	inset: float = DEFAULT_LABEL_INSET,
) -> tuple[float, float]:
	"""
	Compute the top-left position of a label box at a rect corner.

	Args:
		corner: One of LABEL_CORNERS.
		rect: Target rect.
		width: Label width.
		height: Label height.
		inset: Distance from the rect edges.

	Returns:
		(x, y) of the label box.
	"""
	vertical, horizontal = corner.split("-")
	x = rect.x + inset
	if horizontal == "right":
		x = rect.right - inset - width
	y = rect.y + inset
	if vertical == "bottom":
		y = rect.bottom - inset - height
	return (x, y)


#============================================
def validate_labels(labels: list[Label], child_count: int, path: str) -> None:
	"""
	Reject labels that cannot be placed.

	Args:
		labels: Declared labels.
		child_count: Number of grid children.
		path: Grid path for error messages.
	"""
	seen: set[int] = set()
	for label in labels:
		if label.child < 0 or label.child >= child_count:
			raise StructuralValidationError(
				f"label '{label.text}' targets child {label.child} of {child_count}",
				path,
			)
		if label.child in seen:
			raise StructuralValidationError(f"duplicate label for child {label.child}", path)
		if label.corner not in LABEL_CORNERS:
			raise StructuralValidationError(f"unknown label corner '{label.corner}'", path)
		seen.add(label.child)


#============================================
def overlay_labels(
	labels: list[Label],
	placements: list[Placement],
	path: str,
	font_name: str = DEFAULT_LABEL_FONT,
	inset: float = DEFAULT_LABEL_INSET,
	scale: float = 1.0,
) -> list[LabelAnnotation]:
	"""
	Resolve labels against the final rects of a grid's children.

	Args:
		labels: Declared labels.
		placements: Placements of the grid's children.
		path: Grid path.
		font_name: ReportLab font name.
		inset: Distance from the cell edges in points.
		scale: Points per layout unit.

	Returns:
		Label annotations relative to the grid origin, in layout units.
		font_size stays in points.
	"""
	by_child = {placement.child: placement for placement in placements if placement.child is not None}
	annotations: list[LabelAnnotation] = []
	for label in labels:
		placement = by_child[label.child]
		font_size = label.font_size or DEFAULT_LABEL_SIZE
		width, height = measure_label(label.text, font_name, font_size)
		width /= scale
		height /= scale
		x, y = place_label(label.corner, placement.cell, width, height, inset / scale)
		annotations.append(
			LabelAnnotation(
				text=label.text,
				corner=label.corner,
				path=placement.path,
				x=x,
				y=y,
				width=width,
				height=height,
				font_size=font_size,
			)
		)
	return annotations
