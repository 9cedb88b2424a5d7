"""Exception types raised while building scenes and configuring renders.

Nothing in here is raised from inside a Taichi kernel. Misses, absorption and
exhausted bounce depth are ordinary results of the path tracer; the errors
below cover configuration that is rejected before rendering starts.
"""


class RaytraceError(Exception):
    """Base class for all errors raised by this package."""


class GeometryError(RaytraceError, ValueError):
    """Degenerate geometry: zero radius, coincident camera points, and so on."""


class MaterialConfigError(RaytraceError, ValueError):
    """Material parameters outside their physically meaningful range."""


class RenderConfigError(RaytraceError, ValueError):
    """Invalid render settings, such as a sample count of zero."""
