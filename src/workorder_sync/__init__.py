"""Work order sync: replay technician notes into a maintenance system."""

__version__ = "0.3.0"
