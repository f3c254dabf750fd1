import pytest

import panel_composer.blocks
import panel_composer.compose
import panel_composer.config
import panel_composer.errors


Anchor = panel_composer.blocks.Anchor
Block = panel_composer.blocks.Block
Cell = panel_composer.blocks.Cell
ComposedHandle = panel_composer.blocks.ComposedHandle
GridSpec = panel_composer.blocks.GridSpec
Label = panel_composer.blocks.Label
Composition = panel_composer.compose.Composition

ALIGN_ANCHORS = panel_composer.config.ALIGN_ANCHORS


#============================================
def build_pair(composition: Composition, align: str = ALIGN_ANCHORS) -> int:
	"""
	Add a 1x2 grid of two 300x250 boxplots with anchors 40 and 55.

	Args:
		composition: Target composition.
		align: x alignment mode.

	Returns:
		Node id of the grid.
	"""
	sepal = composition.add_block(Block(300.0, 250.0, anchors=(Anchor("x", 40.0),), name="sepal"))
	petal = composition.add_block(Block(300.0, 250.0, anchors=(Anchor("x", 55.0),), name="petal"))
	return composition.add_grid(
		GridSpec(1, 2, align_x=align, name="boxplots"),
		[Cell(sepal, 0, 0), Cell(petal, 0, 1)],
	)


#============================================
def test_nested_grid_becomes_one_block() -> None:
	"""
	A nested grid is placed as a single composed block of its cell size.
	"""
	composition = Composition()
	boxplots = build_pair(composition)
	scatter = composition.add_block(Block(600.0, 450.0, name="scatter"))
	root = composition.add_grid(
		GridSpec(2, 1, row_weights=(1.0, 1.8), name="figure"),
		[Cell(boxplots, 0, 0), Cell(scatter, 1, 0)],
	)
	composition.set_root(root)
	resolved = composition.resolve(600.0, 700.0)
	assert resolved.block.width == 600.0
	assert resolved.block.height == 700.0

	placements = resolved.block.handle.placements
	assert len(placements) == 2
	nested = placements[0].block
	assert isinstance(nested.handle, ComposedHandle)
	assert nested.width == pytest.approx(600.0)
	assert nested.height == pytest.approx(250.0)
	assert len(nested.handle.placements) == 2
	assert placements[1].block.name == "scatter"
	assert [leaf.path for leaf in resolved.leaves()] == [
		"figure/boxplots/sepal",
		"figure/boxplots/petal",
		"figure/scatter",
	]


#============================================
def test_unconstrained_root_uses_natural_size() -> None:
	"""
	Without an output size the grid fits every child plus padding.
	"""
	composition = Composition()
	root = build_pair(composition)
	composition.set_root(root)
	assert composition.natural_size() == (630.0, 250.0)

	composition = Composition()
	root = build_pair(composition, align=panel_composer.config.ALIGN_NONE)
	composition.set_root(root)
	resolved = composition.resolve()
	assert resolved.block.width == pytest.approx(600.0)
	assert resolved.block.height == pytest.approx(250.0)


#============================================
def test_nested_natural_size_respects_weights() -> None:
	"""
	Natural height scales a row's need by the weight ratio.
	"""
	composition = Composition()
	boxplots = build_pair(composition, align=panel_composer.config.ALIGN_NONE)
	scatter = composition.add_block(Block(600.0, 450.0, name="scatter"))
	root = composition.add_grid(
		GridSpec(2, 1, row_weights=(1.0, 1.8), name="figure"),
		[Cell(boxplots, 0, 0), Cell(scatter, 1, 0)],
	)
	composition.set_root(root)
	width, height = composition.natural_size()
	assert width == pytest.approx(600.0)
	# 250 * 2.8 = 700 for the boxplots, 450 * 2.8 / 1.8 = 700 for the scatterplot
	assert height == pytest.approx(700.0)


#============================================
def test_zero_size_is_unresolvable() -> None:
	"""
	A root offered no space fails with the root path.
	"""
	composition = Composition()
	root = build_pair(composition)
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.UnresolvableSizeError) as excinfo:
		composition.resolve(0.0, 100.0)
	assert excinfo.value.path == "boxplots"


#============================================
def test_missing_root_rejected() -> None:
	"""
	A composition needs a grid root.
	"""
	composition = Composition()
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(100.0, 100.0)
	block = composition.add_block(Block(100.0, 100.0))
	composition.set_root(block)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(100.0, 100.0)


#============================================
def test_shared_node_rejected() -> None:
	"""
	A node may only be placed by one grid.
	"""
	composition = Composition()
	block = composition.add_block(Block(100.0, 100.0))
	first = composition.add_grid(GridSpec(1, 1), [Cell(block, 0, 0)])
	second = composition.add_grid(GridSpec(1, 1), [Cell(block, 0, 0)])
	root = composition.add_grid(GridSpec(1, 2), [Cell(first, 0, 0), Cell(second, 0, 1)])
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(200.0, 100.0)


#============================================
def test_root_cannot_be_nested() -> None:
	"""
	Referencing the root from a grid is a cycle.
	"""
	composition = Composition()
	root = composition.add_grid(GridSpec(1, 1), [Cell(0, 0, 0)])
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(100.0, 100.0)


#============================================
def test_unknown_node_rejected() -> None:
	"""
	Cells must reference existing nodes.
	"""
	composition = Composition()
	root = composition.add_grid(GridSpec(1, 1), [Cell(7, 0, 0)])
	composition.set_root(root)
	with pytest.raises(panel_composer.errors.StructuralValidationError):
		composition.resolve(100.0, 100.0)


#============================================
def test_errors_are_value_errors() -> None:
	"""
	Composition errors stay catchable as ValueError.
	"""
	error = panel_composer.errors.AmbiguousLegendError("legends differ", "figure/boxplots")
	assert isinstance(error, ValueError)
	assert error.path == "figure/boxplots"
	assert str(error) == "figure/boxplots: legends differ"


#============================================
def test_resolve_compositions_matches_sequential() -> None:
	"""
	Independent compositions resolve the same on a thread pool.
	"""
	jobs = []
	for height in (400.0, 500.0, 600.0):
		composition = Composition()
		root = build_pair(composition)
		composition.set_root(root)
		jobs.append((composition, 600.0, height))
	results = panel_composer.compose.resolve_compositions(jobs, max_workers=3)
	for (composition, width, height), result in zip(jobs, results):
		assert result.rects() == composition.resolve(width, height).rects()
		assert result.block.height == height


#============================================
def test_repeated_names_get_unique_paths() -> None:
	"""
	Children sharing a name keep separate paths and rects.
	"""
	composition = Composition()
	first = composition.add_block(Block(100.0, 100.0, name="panel"))
	second = composition.add_block(Block(100.0, 100.0, name="panel"))
	root = composition.add_grid(GridSpec(1, 2, name="figure"), [Cell(first, 0, 0), Cell(second, 0, 1)])
	composition.set_root(root)
	rects = composition.resolve(200.0, 100.0).rects()
	assert sorted(rects) == ["figure/panel", "figure/panel-1"]
	assert rects["figure/panel"].x == pytest.approx(0.0)
	assert rects["figure/panel-1"].x == pytest.approx(100.0)


#============================================
def test_block_named_legend_does_not_collide_with_legend_strip() -> None:
	"""
	A child called legend is renamed beside a shared legend strip.
	"""
	legend = panel_composer.blocks.Legend(entries=(panel_composer.blocks.LegendEntry("A"),), width=20.0, height=40.0)
	composition = Composition()
	first = composition.add_block(Block(120.0, 100.0, legend=legend, name="legend"))
	second = composition.add_block(Block(120.0, 100.0, legend=legend, name="scatter"))
	root = composition.add_grid(
		GridSpec(1, 2, name="figure"),
		[Cell(first, 0, 0), Cell(second, 0, 1)],
		legend_group=panel_composer.blocks.LegendGroup((0, 1), "right"),
	)
	composition.set_root(root)
	rects = composition.resolve(220.0, 100.0).rects()
	assert sorted(rects) == ["figure/legend", "figure/legend-0", "figure/scatter"]
	assert rects["figure/legend"].x == pytest.approx(200.0)
	assert rects["figure/legend-0"].x == pytest.approx(0.0)
