"""
Shared configuration and constants.
"""

import dataclasses


POINTS_PER_INCH = 72.0
PIXELS_PER_INCH = 96.0

ALIGN_NONE = "none"
ALIGN_ANCHORS = "align-anchors"
ALIGN_MODES = (ALIGN_NONE, ALIGN_ANCHORS)

DEFAULT_ANCHOR = "plot"

DEFAULT_LABEL_INSET = 4.0
DEFAULT_LABEL_CORNER = "top-left"
LABEL_CORNERS = ("top-left", "top-right", "bottom-left", "bottom-right")

LEGEND_SIDES = ("right", "left", "top", "bottom")
LEGEND_NONE = "none"
LEGEND_SWATCH_SIZE = 8.0
LEGEND_ROW_SPACING = 4.0
LEGEND_PADDING = 4.0
LEGEND_TEXT_SIZE = 8.0

DEFAULT_FONT_REGULAR = "Helvetica"
DEFAULT_FONT_BOLD = "Helvetica-Bold"
DEFAULT_LABEL_FONT = DEFAULT_FONT_BOLD
DEFAULT_LABEL_SIZE = 14.0

OUTLINE_LINE_WIDTH = 0.3
DEFAULT_BACKGROUND = "#FFFFFF"

UNIT_SCALES = {
	"pt": 1.0,
	"in": POINTS_PER_INCH,
	"px": POINTS_PER_INCH / PIXELS_PER_INCH,
}


@dataclasses.dataclass
class ExportConfig:
	width: float
	height: float
	unit: str = "pt"
	output_format: str = "pdf"
	page_compression: bool = True
	draw_outlines: bool = False
	background: str | None = DEFAULT_BACKGROUND


@dataclasses.dataclass
class ExportResult:
	output_path: str
	page_width: float
	page_height: float
	blocks_drawn: int
	pdf_panels_merged: int
	labels_drawn: int


#============================================
def unit_scale(unit: str) -> float:
	"""
	Get the number of points per layout unit.

	Args:
		unit: Unit name, one of "pt", "in" or "px".

	Returns:
		Points per unit.
	"""
	normalized = unit.strip().lower()
	if normalized not in UNIT_SCALES:
		raise ValueError(f"Unknown unit: {unit}")
	return UNIT_SCALES[normalized]
