"""
Reference export of resolved compositions to PDF.
"""

# Standard Library
import io
import json
import pathlib
import typing

# PIP3 modules
import PIL.Image
import pypdf
import reportlab.lib.utils
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfgen.canvas

# local repo modules
import panel_composer.blocks
import panel_composer.compose
import panel_composer.config
import panel_composer.errors
import panel_composer.legend


Block = panel_composer.blocks.Block
Legend = panel_composer.blocks.Legend
Placement = panel_composer.blocks.Placement
LabelAnnotation = panel_composer.blocks.LabelAnnotation
LegendHandle = panel_composer.legend.LegendHandle
ResolvedComposition = panel_composer.compose.ResolvedComposition
ExportConfig = panel_composer.config.ExportConfig
ExportResult = panel_composer.config.ExportResult
ExportError = panel_composer.errors.ExportError

DEFAULT_FONT_REGULAR = panel_composer.config.DEFAULT_FONT_REGULAR
DEFAULT_FONT_BOLD = panel_composer.config.DEFAULT_FONT_BOLD
DEFAULT_LABEL_FONT = panel_composer.config.DEFAULT_LABEL_FONT
LEGEND_SWATCH_SIZE = panel_composer.config.LEGEND_SWATCH_SIZE
LEGEND_ROW_SPACING = panel_composer.config.LEGEND_ROW_SPACING
LEGEND_PADDING = panel_composer.config.LEGEND_PADDING
LEGEND_TEXT_SIZE = panel_composer.config.LEGEND_TEXT_SIZE
OUTLINE_LINE_WIDTH = panel_composer.config.OUTLINE_LINE_WIDTH


#============================================
def parse_hex_color(value: str) -> tuple[float, float, float]:
	"""
	Parse a hex color string into RGB floats.

	Args:
		value: Color string like "#AABBCC".

	Returns:
		Tuple of (r, g, b) in 0.0-1.0 range.
	"""
	if not value or not value.startswith("#") or len(value) != 7:
		return (0.0, 0.0, 0.0)
	red = int(value[1:3], 16) / 255.0
	green = int(value[3:5], 16) / 255.0
	blue = int(value[5:7], 16) / 255.0
	return (red, green, blue)


class PageMapper:
	"""
	Map layout rects (top-left origin, y down) onto PDF points.
	"""

	def __init__(self, layout_width: float, layout_height: float, page_width: float, page_height: float) -> None:
		self.x_scale = page_width / layout_width
		self.y_scale = page_height / layout_height
		self.page_height = page_height

	def rect(self, rect: panel_composer.blocks.Rect) -> tuple[float, float, float, float]:
		x = rect.x * self.x_scale
		y = self.page_height - rect.bottom * self.y_scale
		return (x, y, rect.width * self.x_scale, rect.height * self.y_scale)

	def point(self, x: float, y: float) -> tuple[float, float]:
		return (x * self.x_scale, self.page_height - y * self.y_scale)


#============================================
def crop_legend_strip(image: PIL.Image.Image, block: Block) -> PIL.Image.Image:
	"""
	Crop the extracted legend strip off a raster panel.

	Args:
		image: Full panel raster, legend included.
		block: Block whose legend was extracted.

	Returns:
		Cropped image.
	"""
	legend = block.suppressed_legend
	if legend is None:
		return image
	if legend.side in ("left", "right"):
		full_width = block.width + legend.width
		strip = int(round(image.width * legend.width / full_width))
		if legend.side == "right":
			return image.crop((0, 0, image.width - strip, image.height))
		return image.crop((strip, 0, image.width, image.height))
	full_height = block.height + legend.height
	strip = int(round(image.height * legend.height / full_height))
	if legend.side == "bottom":
		return image.crop((0, 0, image.width, image.height - strip))
	return image.crop((0, strip, image.width, image.height))


#============================================
def draw_legend(
	pdf: reportlab.pdfgen.canvas.Canvas,
	legend: Legend,
	x: float,
	y: float,
	width: float,
	height: float,
) -> None:
	"""
	Draw legend entries as swatch and text rows from the top of the box.

	Args:
		pdf: ReportLab canvas.
		legend: Legend content.
		x: Box x in PDF points.
		y: Box bottom y in PDF points.
		width: Box width.
		height: Box height.
	"""
	row_height = max(LEGEND_SWATCH_SIZE, LEGEND_TEXT_SIZE)
	cursor = y + height - LEGEND_PADDING
	left = x + LEGEND_PADDING
	if legend.title:
		cursor -= LEGEND_TEXT_SIZE
		pdf.setFillColorRGB(0.0, 0.0, 0.0)
		pdf.setFont(DEFAULT_FONT_BOLD, LEGEND_TEXT_SIZE)
		pdf.drawString(left, cursor, legend.title)
		cursor -= LEGEND_ROW_SPACING
	pdf.setFont(DEFAULT_FONT_REGULAR, LEGEND_TEXT_SIZE)
	for entry in legend.entries:
		row_bottom = cursor - row_height
		if row_bottom < y:
			break
		color = parse_hex_color(entry.style.get("color", "#000000"))
		pdf.setFillColorRGB(color[0], color[1], color[2])
		pdf.setStrokeColorRGB(color[0], color[1], color[2])
		marker = entry.style.get("marker", "square")
		swatch_center_y = row_bottom + row_height / 2.0
		if marker == "circle":
			pdf.circle(left + LEGEND_SWATCH_SIZE / 2.0, swatch_center_y, LEGEND_SWATCH_SIZE / 2.0, stroke=0, fill=1)
		elif marker == "line":
			pdf.setLineWidth(1.5)
			pdf.line(left, swatch_center_y, left + LEGEND_SWATCH_SIZE, swatch_center_y)
		else:
			pdf.rect(left, swatch_center_y - LEGEND_SWATCH_SIZE / 2.0, LEGEND_SWATCH_SIZE, LEGEND_SWATCH_SIZE, stroke=0, fill=1)
		pdf.setFillColorRGB(0.0, 0.0, 0.0)
		text_x = left + LEGEND_SWATCH_SIZE + LEGEND_ROW_SPACING
		pdf.drawString(text_x, swatch_center_y - LEGEND_TEXT_SIZE * 0.35, entry.label)
		cursor = row_bottom - LEGEND_ROW_SPACING


#============================================
def draw_raster(
	pdf: reportlab.pdfgen.canvas.Canvas,
	image: PIL.Image.Image,
	block: Block,
	box: tuple[float, float, float, float],
) -> None:
	"""
	Draw a raster panel stretched into its box.

	Args:
		pdf: ReportLab canvas.
		image: Panel image.
		block: Block being drawn.
		box: (x, y, width, height) in PDF points.
	"""
	image = crop_legend_strip(image, block)
	image_reader = reportlab.lib.utils.ImageReader(image)
	pdf.drawImage(
		image_reader,
		box[0],
		box[1],
		width=box[2],
		height=box[3],
		mask=None,
		preserveAspectRatio=False,
		anchor="sw",
	)


#============================================
def draw_handle(
	pdf: reportlab.pdfgen.canvas.Canvas,
	handle: object,
	block: Block,
	box: tuple[float, float, float, float],
	pdf_panels: list[tuple[pathlib.Path, tuple[float, float, float, float]]],
	path: str,
) -> bool:
	"""
	Draw one render handle, or queue it for PDF merging.

	Args:
		pdf: ReportLab canvas.
		handle: Opaque render handle.
		block: Block that owns the handle.
		box: (x, y, width, height) in PDF points.
		pdf_panels: Queue of PDF panels merged after drawing.
		path: Placement path for error messages.

	Returns:
		True when something was drawn or queued.
	"""
	if handle is None:
		return False
	show_legend = block.suppressed_legend is None
	if isinstance(handle, LegendHandle):
		if handle.legend.handle is not None:
			return draw_handle(pdf, handle.legend.handle, Block(block.width, block.height), box, pdf_panels, path)
		draw_legend(pdf, handle.legend, *box)
		return True
	if isinstance(handle, PIL.Image.Image):
		draw_raster(pdf, handle, block, box)
		return True
	if isinstance(handle, (str, pathlib.Path)):
		handle_path = pathlib.Path(handle)
		if handle_path.suffix.lower() == ".pdf":
			if not show_legend:
				stripped = block.suppressed_legend.stripped_handle
				if stripped is None:
					raise ExportError(f"{path}: PDF panel legend was extracted but no stripped_handle is set")
				stripped_block = Block(block.width, block.height)
				return draw_handle(pdf, stripped, stripped_block, box, pdf_panels, path)
			pdf_panels.append((handle_path, box))
			return True
		with PIL.Image.open(handle_path) as image:
			image.load()
			draw_raster(pdf, image, block, box)
		return True
	if callable(handle):
		pdf.saveState()
		handle(pdf, box[0], box[1], box[2], box[3], show_legend)
		pdf.restoreState()
		return True
	raise ExportError(f"{path}: unsupported render handle {type(handle).__name__}")


#============================================
def draw_labels(
	pdf: reportlab.pdfgen.canvas.Canvas,
	labels: tuple[LabelAnnotation, ...],
	mapper: PageMapper,
	layout_scale: float = 1.0,
) -> None:
	"""
	Draw label annotations on top of the panels.

	Label font sizes are in points and label boxes are in layout units;
	both follow the figure when the page is scaled.

	Args:
		pdf: ReportLab canvas.
		labels: Absolute label annotations.
		mapper: Layout to page mapping.
		layout_scale: Points per layout unit.
	"""
	pdf.setFillColorRGB(0.0, 0.0, 0.0)
	for label in labels:
		font_size = label.font_size * mapper.y_scale / layout_scale
		ascent = reportlab.pdfbase.pdfmetrics.getAscent(DEFAULT_LABEL_FONT) * label.font_size / 1000.0 / layout_scale
		x, baseline_y = mapper.point(label.x, label.y + ascent)
		pdf.setFont(DEFAULT_LABEL_FONT, font_size)
		pdf.drawString(x, baseline_y, label.text)


#============================================
def draw_outlines(
	pdf: reportlab.pdfgen.canvas.Canvas,
	placements: list[Placement],
	mapper: PageMapper,
) -> None:
	"""
	Draw cell and content outlines for layout debugging.

	Args:
		pdf: ReportLab canvas.
		placements: Absolute leaf placements.
		mapper: Layout to page mapping.
	"""
	pdf.setLineWidth(OUTLINE_LINE_WIDTH)
	for placement in placements:
		pdf.setStrokeColorRGB(0.7, 0.7, 0.7)
		pdf.rect(*mapper.rect(placement.cell), stroke=1, fill=0)
		pdf.setStrokeColorRGB(0.9, 0.3, 0.3)
		pdf.rect(*mapper.rect(placement.content), stroke=1, fill=0)


#============================================
def build_canvas_page(
	page_width: float,
	page_height: float,
	config: ExportConfig,
	draw: typing.Callable[[reportlab.pdfgen.canvas.Canvas], None],
) -> pypdf.PageObject:
	"""
	Draw one ReportLab page in memory and read it back with pypdf.

	Args:
		page_width: Page width in points.
		page_height: Page height in points.
		config: Export configuration.
		draw: Callable receiving the canvas.

	Returns:
		PDF page object.
	"""
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(
		buffer,
		pagesize=(page_width, page_height),
		pageCompression=1 if config.page_compression else 0,
	)
	draw(pdf)
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]


#============================================
def export_pdf(
	resolved: ResolvedComposition,
	output_path: pathlib.Path,
	config: ExportConfig,
) -> ExportResult:
	"""
	Write a resolved composition to a single-page PDF.

	Panels are drawn first, PDF panels are merged next, and labels and
	outlines go on an overlay page merged last.

	Args:
		resolved: Resolved composition.
		output_path: Output PDF path.
		config: Export configuration.

	Returns:
		ExportResult.
	"""
	if config.output_format.lower() != "pdf":
		raise ExportError(f"unsupported output format '{config.output_format}'")
	scale = panel_composer.config.unit_scale(config.unit)
	page_width = config.width * scale
	page_height = config.height * scale
	if page_width <= 0.0 or page_height <= 0.0:
		raise ExportError(f"invalid page size {page_width:.2f}x{page_height:.2f}")

	layout_scale = panel_composer.config.unit_scale(resolved.unit)
	mapper = PageMapper(resolved.block.width, resolved.block.height, page_width, page_height)
	placements = list(resolved.leaves())
	pdf_panels: list[tuple[pathlib.Path, tuple[float, float, float, float]]] = []
	drawn = [0]

	def draw_base(pdf: reportlab.pdfgen.canvas.Canvas) -> None:
		if config.background:
			color = parse_hex_color(config.background)
			pdf.setFillColorRGB(color[0], color[1], color[2])
			pdf.rect(0, 0, page_width, page_height, stroke=0, fill=1)
		for placement in placements:
			box = mapper.rect(placement.content)
			if draw_handle(pdf, placement.block.handle, placement.block, box, pdf_panels, placement.path):
				drawn[0] += 1

	def draw_overlay(pdf: reportlab.pdfgen.canvas.Canvas) -> None:
		draw_labels(pdf, resolved.labels, mapper, layout_scale)
		if config.draw_outlines:
			draw_outlines(pdf, placements, mapper)

	base_page = build_canvas_page(page_width, page_height, config, draw_base)
	overlay_page = build_canvas_page(page_width, page_height, config, draw_overlay)

	writer = pypdf.PdfWriter()
	writer.add_page(base_page)
	page = writer.pages[-1]
	panel_cache: dict[str, pypdf.PageObject] = {}
	for panel_path, box in pdf_panels:
		key = str(panel_path)
		if key not in panel_cache:
			reader = pypdf.PdfReader(key)
			panel_cache[key] = reader.pages[0]
		panel_page = panel_cache[key]
		panel_width = float(panel_page.mediabox.width)
		panel_height = float(panel_page.mediabox.height)
		transform = pypdf.Transformation().scale(box[2] / panel_width, box[3] / panel_height).translate(
			box[0],
			box[1],
		)
		page.merge_transformed_page(panel_page, transform)
	page.merge_page(overlay_page)
	writer.write(str(output_path))

	return ExportResult(
		output_path=str(output_path),
		page_width=page_width,
		page_height=page_height,
		blocks_drawn=drawn[0],
		pdf_panels_merged=len(pdf_panels),
		labels_drawn=len(resolved.labels),
	)


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	resolved: ResolvedComposition,
	config: ExportConfig,
	result: ExportResult | None = None,
) -> None:
	"""
	Write a manifest JSON file of the resolved layout.

	Args:
		manifest_path: Output path.
		resolved: Resolved composition.
		config: Export configuration.
		result: Export result, when the figure was written.
	"""
	placements = []
	for placement in resolved.leaves():
		placements.append(
			{
				"path": placement.path,
				"cell": list(placement.cell.as_tuple()),
				"content": list(placement.content.as_tuple()),
				"legend_extracted": placement.block.suppressed_legend is not None,
			}
		)
	labels = []
	for label in resolved.labels:
		labels.append(
			{
				"text": label.text,
				"corner": label.corner,
				"target": label.path,
				"position": [label.x, label.y],
				"size": [label.width, label.height],
			}
		)
	data = {
		"size": [resolved.block.width, resolved.block.height],
		"placements": placements,
		"labels": labels,
		"export": {
			"width": config.width,
			"height": config.height,
			"unit": config.unit,
			"format": config.output_format,
			"page_compression": config.page_compression,
			"draw_outlines": config.draw_outlines,
		},
	}
	if result is not None:
		data["output"] = {
			"path": result.output_path,
			"page_width": result.page_width,
			"page_height": result.page_height,
			"blocks_drawn": result.blocks_drawn,
			"pdf_panels_merged": result.pdf_panels_merged,
		}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
