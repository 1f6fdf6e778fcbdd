"""SiteBoard: workspace-scoped data access for the SiteBoard project-management backend."""

__version__ = "0.1.0"
