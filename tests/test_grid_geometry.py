import pytest

import panel_composer.blocks
import panel_composer.compose
import panel_composer.errors
import panel_composer.solver


Block = panel_composer.blocks.Block
Cell = panel_composer.blocks.Cell
GridSpec = panel_composer.blocks.GridSpec
Rect = panel_composer.blocks.Rect
Composition = panel_composer.compose.Composition

EPSILON = 1e-6


#============================================
def build_uniform_grid(rows: int, columns: int) -> Composition:
	"""
	Build a grid with one equal-size block per cell.

	Args:
		rows: Row count.
		columns: Column count.

	Returns:
		Composition with the grid as root.
	"""
	composition = Composition()
	cells = []
	for row in range(rows):
		for col in range(columns):
			child = composition.add_block(Block(100.0, 100.0, name=f"r{row}c{col}"))
			cells.append(Cell(child, row, col))
	root = composition.add_grid(GridSpec(rows, columns, name="figure"), cells)
	composition.set_root(root)
	return composition


#============================================
def test_uniform_cells_share_area() -> None:
	"""
	Equal weights give every child an equal share of the area.
	"""
	composition = build_uniform_grid(2, 3)
	resolved = composition.resolve(600.0, 400.0)
	rects = resolved.rects()
	assert len(rects) == 6
	for rect in rects.values():
		assert rect.area == pytest.approx(600.0 * 400.0 / 6, abs=EPSILON)


#============================================
def test_cells_non_overlapping_and_within_grid() -> None:
	"""
	Adjacent cells touch but never overlap.
	"""
	composition = build_uniform_grid(3, 4)
	resolved = composition.resolve(800.0, 300.0)
	rects = resolved.rects()
	for row in range(3):
		for col in range(4):
			rect = rects[f"figure/r{row}c{col}"]
			assert 0.0 <= rect.x < rect.right <= 800.0 + EPSILON
			assert 0.0 <= rect.y < rect.bottom <= 300.0 + EPSILON
			if col < 3:
				right_rect = rects[f"figure/r{row}c{col + 1}"]
				assert right_rect.x >= rect.right - EPSILON
			if row < 2:
				lower_rect = rects[f"figure/r{row + 1}c{col}"]
				assert lower_rect.y >= rect.bottom - EPSILON


#============================================
def test_row_weights_split_height() -> None:
	"""
	Row weights 1 and 1.8 split the height 1:1.8.
	"""
	composition = Composition()
	top = composition.add_block(Block(600.0, 250.0, name="top"))
	bottom = composition.add_block(Block(600.0, 450.0, name="bottom"))
	root = composition.add_grid(
		GridSpec(2, 1, row_weights=(1.0, 1.8), name="figure"),
		[Cell(top, 0, 0), Cell(bottom, 1, 0)],
	)
	composition.set_root(root)
	rects = composition.resolve(600.0, 700.0).rects()
	assert rects["figure/top"].height == pytest.approx(700.0 / 2.8)
	assert rects["figure/bottom"].height == pytest.approx(1.8 * 700.0 / 2.8)
	assert rects["figure/bottom"].y == pytest.approx(700.0 / 2.8)


#============================================
def test_span_receives_union_of_cells() -> None:
	"""
	A child spanning two columns receives both column widths.
	"""
	composition = Composition()
	left = composition.add_block(Block(100.0, 100.0, name="left"))
	right = composition.add_block(Block(100.0, 100.0, name="right"))
	wide = composition.add_block(Block(200.0, 100.0, name="wide"))
	root = composition.add_grid(
		GridSpec(2, 2, column_weights=(1.0, 3.0), name="figure"),
		[Cell(left, 0, 0), Cell(right, 0, 1), Cell(wide, 1, 0, column_span=2)],
	)
	composition.set_root(root)
	rects = composition.resolve(400.0, 200.0).rects()
	assert rects["figure/left"].width == pytest.approx(100.0)
	assert rects["figure/right"].width == pytest.approx(300.0)
	assert rects["figure/wide"] == Rect(0.0, 100.0, 400.0, 100.0)


#============================================
def test_out_of_range_cell_rejected() -> None:
	"""
	A child outside the declared rows and columns fails validation.
	"""
	composition = Composition()
	child = composition.add_block(Block(100.0, 100.0))
	root = composition.add_grid(GridSpec(1, 2), [Cell(child, 0, 2)])
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(200.0, 100.0)


#============================================
def test_overlapping_cells_rejected() -> None:
	"""
	Two children claiming the same cell fail validation.
	"""
	composition = Composition()
	first = composition.add_block(Block(100.0, 100.0))
	second = composition.add_block(Block(100.0, 100.0))
	root = composition.add_grid(
		GridSpec(2, 2),
		[Cell(first, 0, 0, column_span=2), Cell(second, 0, 1)],
	)
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(200.0, 200.0)


#============================================
def test_bad_weights_rejected() -> None:
	"""
	Weight lists must match the track count and be non-negative.
	"""
	spec = GridSpec(2, 1, row_weights=(1.0,))
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		panel_composer.solver.validate_grid(spec, [], "figure")
	spec = GridSpec(2, 1, row_weights=(1.0, -1.0))
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		panel_composer.solver.validate_grid(spec, [], "figure")


#============================================
def test_zero_weight_row_is_unresolvable() -> None:
	"""
	A child in a zero-weight row gets no space.
	"""
	composition = Composition()
	child = composition.add_block(Block(100.0, 100.0))
	other = composition.add_block(Block(100.0, 100.0))
	root = composition.add_grid(
		GridSpec(2, 1, row_weights=(0.0, 1.0), name="figure"),
		[Cell(child, 0, 0), Cell(other, 1, 0)],
	)
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.UnresolvableSizeError) as excinfo:
		composition.resolve(100.0, 100.0)
	assert excinfo.value.path == "figure"


#============================================
def test_compute_align_offset() -> None:
	"""
	Justification offsets for leading, trailing and centered items.
	"""
	assert panel_composer.solver.compute_align_offset(100.0, 40.0, "top") == 0.0
	assert panel_composer.solver.compute_align_offset(100.0, 40.0, "bottom") == 60.0
	assert panel_composer.solver.compute_align_offset(100.0, 40.0, "center") == 30.0
	assert panel_composer.solver.compute_align_offset(30.0, 40.0, "right") == 0.0
