"""
Load composition declarations from JSON.

Example document:

	{
		"size": {"width": 600, "height": 700, "unit": "px"},
		"blocks": {
			"sepal": {"width": 300, "height": 250, "anchors": {"x": 40}, "image": "sepal.png"},
			"petal": {"width": 300, "height": 250, "anchors": {"x": 55}, "image": "petal.png"},
			"scatter": {"width": 600, "height": 450, "pdf": "scatter.pdf"}
		},
		"root": {
			"rows": 2, "columns": 1, "row_weights": [1, 1.8],
			"cells": [
				{"row": 0, "column": 0, "grid": {
					"name": "boxplots", "rows": 1, "columns": 2, "align": {"x": "align-anchors"},
					"cells": [{"block": "sepal", "row": 0, "column": 0}, {"block": "petal", "row": 0, "column": 1}],
					"labels": [{"child": 0, "text": "A"}, {"child": 1, "text": "B"}]
				}},
				{"row": 1, "column": 0, "block": "scatter"}
			],
			"labels": [{"child": 1, "text": "C"}]
		}
	}
"""

# Standard Library
import dataclasses
import json
import pathlib

# local repo modules
import panel_composer.blocks
import panel_composer.compose
import panel_composer.config
import panel_composer.errors


Anchor = panel_composer.blocks.Anchor
Block = panel_composer.blocks.Block
Cell = panel_composer.blocks.Cell
GridSpec = panel_composer.blocks.GridSpec
Label = panel_composer.blocks.Label
Legend = panel_composer.blocks.Legend
LegendEntry = panel_composer.blocks.LegendEntry
LegendGroup = panel_composer.blocks.LegendGroup
Composition = panel_composer.compose.Composition
StructuralValidationError = panel_composer.errors.StructuralValidationError

ALIGN_NONE = panel_composer.config.ALIGN_NONE
DEFAULT_ANCHOR = panel_composer.config.DEFAULT_ANCHOR
DEFAULT_LABEL_CORNER = panel_composer.config.DEFAULT_LABEL_CORNER
LEGEND_SIDES = panel_composer.config.LEGEND_SIDES
UNIT_SCALES = panel_composer.config.UNIT_SCALES


@dataclasses.dataclass
class Declaration:
	composition: Composition
	width: float | None
	height: float | None
	unit: str


#============================================
def require(data: dict, key: str, where: str):
	"""
	Fetch a required key from a declaration mapping.

	Args:
		data: Declaration mapping.
		key: Required key.
		where: Location for error messages.

	Returns:
		The value.
	"""
	if not isinstance(data, dict):
		raise StructuralValidationError(f"expected an object, got {type(data).__name__}", where)
	if key not in data:
		raise StructuralValidationError(f"missing '{key}'", where)
	return data[key]


#============================================
def parse_anchors(value, where: str) -> tuple[Anchor, ...]:
	"""
	Parse anchors given as {"x": 40} or a list of anchor objects.

	Args:
		value: Raw anchors value.
		where: Location for error messages.

	Returns:
		Tuple of anchors.
	"""
	if value is None:
		return ()
	if isinstance(value, dict):
		return tuple(Anchor(axis=axis, offset=float(offset)) for axis, offset in value.items())
	anchors = []
	for index, item in enumerate(value):
		item_where = f"{where}[{index}]"
		anchors.append(
			Anchor(
				axis=require(item, "axis", item_where),
				offset=float(require(item, "offset", item_where)),
				name=item.get("name", DEFAULT_ANCHOR),
			)
		)
	return tuple(anchors)


#============================================
def parse_legend(value, base_dir: pathlib.Path, where: str) -> Legend | None:
	"""
	Parse a block legend.

	Args:
		value: Raw legend value.
		base_dir: Directory for relative paths.
		where: Location for error messages.

	Returns:
		Legend or None.
	"""
	if value is None:
		return None
	entries = []
	for index, item in enumerate(require(value, "entries", where)):
		if isinstance(item, str):
			entries.append(LegendEntry(label=item))
			continue
		label = require(item, "label", f"{where}.entries[{index}]")
		style = {key: str(val) for key, val in item.items() if key != "label"}
		entries.append(LegendEntry(label=label, style=style))
	stripped_handle = None
	if value.get("stripped_pdf"):
		stripped_handle = base_dir / value["stripped_pdf"]
	elif value.get("stripped_image"):
		stripped_handle = base_dir / value["stripped_image"]
	side = value.get("side", "right")
	if side not in LEGEND_SIDES:
		raise StructuralValidationError(f"invalid legend side '{side}'", where)
	return Legend(
		entries=tuple(entries),
		side=side,
		width=float(value.get("width", 0.0)),
		height=float(value.get("height", 0.0)),
		title=value.get("title", ""),
		stripped_handle=stripped_handle,
	)


#============================================
def parse_block(name: str, value: dict, base_dir: pathlib.Path) -> Block:
	"""
	Parse one block declaration.

	Args:
		name: Block name.
		value: Raw block mapping.
		base_dir: Directory for relative paths.

	Returns:
		Block.
	"""
	where = f"blocks.{name}"
	handle = None
	if value.get("image"):
		handle = base_dir / value["image"]
	elif value.get("pdf"):
		handle = base_dir / value["pdf"]
	return Block(
		width=float(require(value, "width", where)),
		height=float(require(value, "height", where)),
		anchors=parse_anchors(value.get("anchors"), f"{where}.anchors"),
		legend=parse_legend(value.get("legend"), base_dir, f"{where}.legend"),
		handle=handle,
		name=name,
	)


#============================================
def parse_weights(value) -> tuple[float, ...] | None:
	if value is None:
		return None
	return tuple(float(weight) for weight in value)


#============================================
def add_grid(
	composition: Composition,
	value: dict,
	blocks: dict[str, Block],
	where: str,
) -> int:
	"""
	Add a grid literal and its nested grids to a composition.

	Args:
		composition: Target composition.
		value: Raw grid mapping.
		blocks: Parsed blocks by name.
		where: Location for error messages.

	Returns:
		Node id of the grid.
	"""
	align = value.get("align", {})
	spec = GridSpec(
		rows=int(require(value, "rows", where)),
		columns=int(require(value, "columns", where)),
		row_weights=parse_weights(value.get("row_weights")),
		column_weights=parse_weights(value.get("column_weights")),
		align_x=align.get("x", ALIGN_NONE),
		align_y=align.get("y", ALIGN_NONE),
		anchor=value.get("anchor", DEFAULT_ANCHOR),
		name=value.get("name", ""),
	)
	cells = []
	for index, item in enumerate(require(value, "cells", where)):
		item_where = f"{where}.cells[{index}]"
		if "grid" in item:
			child = add_grid(composition, item["grid"], blocks, item_where)
		else:
			block_name = require(item, "block", item_where)
			if block_name not in blocks:
				raise StructuralValidationError(f"unknown block '{block_name}'", item_where)
			child = composition.add_block(blocks[block_name])
		cells.append(
			Cell(
				child=child,
				row=int(require(item, "row", item_where)),
				column=int(require(item, "column", item_where)),
				row_span=int(item.get("row_span", 1)),
				column_span=int(item.get("column_span", 1)),
			)
		)
	labels = []
	for index, item in enumerate(value.get("labels", [])):
		item_where = f"{where}.labels[{index}]"
		font_size = item.get("font_size")
		labels.append(
			Label(
				child=int(require(item, "child", item_where)),
				text=str(require(item, "text", item_where)),
				corner=item.get("corner", DEFAULT_LABEL_CORNER),
				font_size=float(font_size) if font_size is not None else None,
			)
		)
	legend_group = None
	if value.get("legend") is not None:
		legend_value = value["legend"]
		legend_group = LegendGroup(
			members=tuple(int(member) for member in require(legend_value, "members", f"{where}.legend")),
			position=legend_value.get("position", "right"),
		)
	return composition.add_grid(spec, cells, labels, legend_group)


#============================================
def build_declaration(data: dict, base_dir: pathlib.Path) -> Declaration:
	"""
	Build a composition from a parsed declaration document.

	Args:
		data: Parsed JSON document.
		base_dir: Directory for relative paths.

	Returns:
		Declaration.
	"""
	blocks = {}
	for name, value in data.get("blocks", {}).items():
		blocks[name] = parse_block(name, value, base_dir)
	size = data.get("size", {})
	width = size.get("width")
	height = size.get("height")
	unit = str(size.get("unit", "pt")).strip().lower()
	if unit not in UNIT_SCALES:
		raise StructuralValidationError(f"unknown unit '{unit}'", "size")

	composition = Composition(unit=unit)
	root = add_grid(composition, require(data, "root", "declaration"), blocks, "root")
	composition.set_root(root)
	return Declaration(
		composition=composition,
		width=float(width) if width is not None else None,
		height=float(height) if height is not None else None,
		unit=unit,
	)


#============================================
def load_declaration(path: pathlib.Path) -> Declaration:
	"""
	Load a JSON composition declaration.

	Args:
		path: Declaration path.

	Returns:
		Declaration.
	"""
	text = path.read_text(encoding="utf-8")
	try:
		data = json.loads(text)
	except json.JSONDecodeError as error:
		raise StructuralValidationError(f"invalid JSON: {error}", str(path)) from error
	return build_declaration(data, path.parent)
