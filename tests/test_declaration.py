import json
import pathlib

import pytest

import panel_composer.declaration
import panel_composer.errors


#============================================
def build_document() -> dict:
	"""
	Build the boxplot and scatterplot declaration.
	"""
	return {
		"size": {"width": 600, "height": 700, "unit": "px"},
		"blocks": {
			"sepal": {"width": 300, "height": 250, "anchors": {"x": 40}, "image": "sepal.png"},
			"petal": {
				"width": 300,
				"height": 250,
				"anchors": [{"axis": "x", "offset": 55, "name": "plot"}],
				"image": "petal.png",
			},
			"scatter": {
				"width": 640,
				"height": 450,
				"pdf": "scatter.pdf",
				"legend": {
					"entries": [{"label": "setosa", "color": "#1B9E77"}, "versicolor", "virginica"],
					"side": "right",
					"width": 40,
					"height": 60,
					"stripped_pdf": "scatter_nolegend.pdf",
				},
			},
		},
		"root": {
			"name": "figure",
			"rows": 2,
			"columns": 1,
			"row_weights": [1, 1.8],
			"cells": [
				{
					"row": 0,
					"column": 0,
					"grid": {
						"name": "boxplots",
						"rows": 1,
						"columns": 2,
						"align": {"x": "align-anchors"},
						"cells": [
							{"block": "sepal", "row": 0, "column": 0},
							{"block": "petal", "row": 0, "column": 1},
						],
						"labels": [{"child": 0, "text": "A"}, {"child": 1, "text": "B"}],
					},
				},
				{"block": "scatter", "row": 1, "column": 0},
			],
			"labels": [{"child": 1, "text": "C", "corner": "top-left", "font_size": 12}],
			"legend": {"members": [1], "position": "none"},
		},
	}


#============================================
def write_document(tmp_path: pathlib.Path, document: dict) -> pathlib.Path:
	path = tmp_path / "figure.json"
	path.write_text(json.dumps(document), encoding="utf-8")
	return path


#============================================
def test_load_declaration_resolves_figure(tmp_path: pathlib.Path) -> None:
	"""
	A JSON declaration resolves to the expected nested layout.
	"""
	path = write_document(tmp_path, build_document())
	declaration = panel_composer.declaration.load_declaration(path)
	assert declaration.width == 600.0
	assert declaration.height == 700.0
	assert declaration.unit == "px"

	resolved = declaration.composition.resolve(declaration.width, declaration.height)
	rects = resolved.rects()
	assert rects["figure/boxplots/sepal"].x == pytest.approx(15.0)
	assert rects["figure/boxplots/petal"].x == pytest.approx(300.0)
	assert rects["figure/scatter"].height == pytest.approx(450.0)
	assert [label.text for label in resolved.labels] == ["C", "A", "B"]
	assert resolved.labels[0].font_size == 12.0


#============================================
def test_declaration_paths_and_legend(tmp_path: pathlib.Path) -> None:
	"""
	Handles resolve against the declaration directory.
	"""
	path = write_document(tmp_path, build_document())
	declaration = panel_composer.declaration.load_declaration(path)
	resolved = declaration.composition.resolve(600.0, 700.0)
	leaves = {leaf.path: leaf for leaf in resolved.leaves()}
	assert leaves["figure/boxplots/sepal"].block.handle == tmp_path / "sepal.png"
	scatter = leaves["figure/scatter"].block
	assert scatter.handle == tmp_path / "scatter.pdf"
	assert scatter.legend is None
	assert scatter.width == pytest.approx(600.0)
	assert scatter.suppressed_legend.labels() == ["setosa", "versicolor", "virginica"]
	assert scatter.suppressed_legend.entries[0].style == {"color": "#1B9E77"}
	assert scatter.suppressed_legend.stripped_handle == tmp_path / "scatter_nolegend.pdf"


#============================================
def test_unknown_block_rejected(tmp_path: pathlib.Path) -> None:
	"""
	Cells must reference declared blocks.
	"""
	document = build_document()
	document["root"]["cells"][1]["block"] = "missing"
	path = write_document(tmp_path, document)
	with pytest.raises(panel_composer.errors.StructuralValidationError) as excinfo:
		panel_composer.declaration.load_declaration(path)
	assert excinfo.value.path == "root.cells[1]"


#============================================
def test_missing_key_rejected(tmp_path: pathlib.Path) -> None:
	"""
	Grids need rows and columns.
	"""
	document = build_document()
	del document["root"]["rows"]
	path = write_document(tmp_path, document)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		panel_composer.declaration.load_declaration(path)


#============================================
def test_invalid_json_rejected(tmp_path: pathlib.Path) -> None:
	"""
	Malformed JSON is a structural error.
	"""
	path = tmp_path / "broken.json"
	path.write_text("{not json", encoding="utf-8")
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		panel_composer.declaration.load_declaration(path)


#============================================
def test_invalid_legend_side_rejected(tmp_path: pathlib.Path) -> None:
	"""
	Block legends must sit on one of the four sides.
	"""
	document = build_document()
	document["blocks"]["scatter"]["legend"]["side"] = "middle"
	path = write_document(tmp_path, document)
	with pytest.raises(panel_composer.errors.StructuralValidationError) as excinfo:
		panel_composer.declaration.load_declaration(path)
	assert excinfo.value.path == "blocks.scatter.legend"


#============================================
def test_unknown_unit_rejected(tmp_path: pathlib.Path) -> None:
	"""
	Sizes must use a known unit.
	"""
	document = build_document()
	document["size"]["unit"] = "furlong"
	path = write_document(tmp_path, document)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		panel_composer.declaration.load_declaration(path)


#============================================
def test_declared_unit_reaches_composition(tmp_path: pathlib.Path) -> None:
	"""
	The composition measures labels in the declared unit.
	"""
	path = write_document(tmp_path, build_document())
	declaration = panel_composer.declaration.load_declaration(path)
	assert declaration.composition.unit == "px"
	assert declaration.composition.scale == pytest.approx(0.75)
