"""
SiteAudit: asynchronous website audit pipeline.
"""

__version__ = "0.1.0"
