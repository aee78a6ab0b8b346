"""
Components Module

Page-level building blocks used by the scrape controllers.
"""

from .pagination_handler import PaginationController
