"""
Controllers Module

Coordinates the pool, pagination and extraction components into one scrape
session per request.
"""

from controllers.review_scraper import ReviewScraper, ScrapeResult

__all__ = ['ReviewScraper', 'ScrapeResult']
