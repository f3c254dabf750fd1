"""
CLI entry point for composing figure panels.
"""

# Standard Library
import argparse
import pathlib
import time

# local repo modules
import panel_composer.config
import panel_composer.declaration
import panel_composer.render


ExportConfig = panel_composer.config.ExportConfig
Declaration = panel_composer.declaration.Declaration


#============================================
def build_export_config(args: argparse.Namespace, declaration: Declaration, width: float, height: float) -> ExportConfig:
	"""
	Build export config from CLI args and the declared size.

	Args:
		args: Parsed argparse namespace.
		declaration: Loaded declaration.
		width: Resolved figure width in declaration units.
		height: Resolved figure height in declaration units.

	Returns:
		ExportConfig.
	"""
	return ExportConfig(
		width=width,
		height=height,
		unit=declaration.unit,
		output_format=args.output_format,
		page_compression=args.page_compression,
		draw_outlines=args.draw_outlines,
	)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Compose rendered panels into one multi-panel figure.")
	parser.add_argument("declaration", help="Composition declaration JSON.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", required=True, help="Output figure path.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")
	output_group.add_argument("-f", "--format", dest="output_format", default="pdf", help="Output format.")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument("-d", "--draw-outlines", dest="draw_outlines", action="store_true", help="Draw cell outlines.")
	behavior_group.add_argument("-D", "--no-draw-outlines", dest="draw_outlines", action="store_false", help="Disable cell outlines.")
	behavior_group.add_argument("-c", "--compress", dest="page_compression", action="store_true", help="Compress page streams.")
	behavior_group.add_argument("-C", "--no-compress", dest="page_compression", action="store_false", help="Write uncompressed page streams.")
	behavior_group.add_argument(
		"--stop-before-rendering",
		dest="stop_before_rendering",
		action="store_true",
		help="Stop after resolving the layout (write the manifest only).",
	)

	parser.set_defaults(
		draw_outlines=False,
		page_compression=True,
		stop_before_rendering=False,
	)

	args = parser.parse_args(argv)
	return args


#============================================
def run_pipeline(args: argparse.Namespace) -> None:
	"""
	Load, resolve and export one composition.

	Args:
		args: Parsed argparse namespace.
	"""
	print("Figure composition pipeline")
	print(f"Declaration: {args.declaration}")
	print(f"Output: {args.output_path}")
	if args.manifest_path:
		print(f"Manifest: {args.manifest_path}")
	print(f"Draw outlines: {args.draw_outlines}")
	print(f"Page compression: {args.page_compression}")
	if args.stop_before_rendering:
		print("Stop before rendering: True")

	start_time = time.perf_counter()
	declaration = panel_composer.declaration.load_declaration(pathlib.Path(args.declaration))
	resolved = declaration.composition.resolve(declaration.width, declaration.height)
	resolve_end = time.perf_counter()
	leaves = list(resolved.leaves())
	print(f"Figure size: {resolved.block.width:.1f}x{resolved.block.height:.1f} {declaration.unit}")
	print(f"Panels placed: {len(leaves)}")
	print(f"Labels placed: {len(resolved.labels)}")

	output_path = pathlib.Path(args.output_path)
	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = f"{output_path}.json"
	config = build_export_config(args, declaration, resolved.block.width, resolved.block.height)

	result = None
	if args.stop_before_rendering:
		print("Stopping before rendering.")
	else:
		result = panel_composer.render.export_pdf(resolved, output_path, config)
		print(f"Blocks drawn: {result.blocks_drawn}")
		print(f"PDF panels merged: {result.pdf_panels_merged}")
	export_end = time.perf_counter()

	panel_composer.render.write_manifest(pathlib.Path(manifest_path), resolved, config, result)
	print(
		"Timing: resolve={:.2f}s export={:.2f}s total={:.2f}s".format(
			resolve_end - start_time,
			export_end - resolve_end,
			export_end - start_time,
		)
	)
	print(f"Manifest written: {manifest_path}")


#============================================
def main() -> None:
	"""
	Main entry point.
	"""
	args = parse_args()
	run_pipeline(args)
