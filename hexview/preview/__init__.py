"""Preview rendering: bundles to sandboxed HTML documents."""

from hexview.preview.renderer import PreviewRenderer, RenderOutcome, data_url

__all__ = ["PreviewRenderer", "RenderOutcome", "data_url"]
