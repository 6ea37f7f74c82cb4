"""Error taxonomy shared by the render pipeline.

Everything except RenderCancelled is recovered inside the pipeline; callers see
a degraded RenderSpec instead of an exception.
"""

from __future__ import annotations


class MarineVizError(RuntimeError):
    pass


class SamplingFailure(MarineVizError):
    """No grid point returned a usable value."""


class InvalidDomain(MarineVizError, ValueError):
    """A numeric domain was non-finite or had min >= max."""


class UnsupportedVariable(MarineVizError):
    pass


class QueryConstructionFailure(MarineVizError):
    """A provider cannot express the requested palette, layer or range."""


class RenderCancelled(MarineVizError):
    pass


class SettingsError(MarineVizError):
    pass
