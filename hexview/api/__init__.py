"""Unified API layer for hexview.

The CLI and the studio REST API both drive previews through
:class:`PreviewProject`, so behaviour is identical in both interfaces.
"""

from hexview.api.project import PreviewProject, TurnReport

__all__ = ["PreviewProject", "TurnReport"]
