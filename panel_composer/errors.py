"""
Composition error taxonomy.
"""


class CompositionError(ValueError):
	"""
	Base error for a composition that cannot be resolved.

	The whole resolve aborts on the first error; `path` names the
	offending node in the composition tree.
	"""

	def __init__(self, message: str, path: str | None = None) -> None:
		self.path = path
		if path:
			message = f"{path}: {message}"
		super().__init__(message)


class StructuralValidationError(CompositionError):
	"""
	Malformed declaration detected before any layout work.
	"""


class AmbiguousLegendError(CompositionError):
	"""
	Legend group members carry differing legend content.
	"""


class UnresolvableSizeError(CompositionError):
	"""
	A grid or cell receives zero or negative space.
	"""


class ExportError(RuntimeError):
	"""
	The export collaborator cannot draw a resolved composition.
	"""
