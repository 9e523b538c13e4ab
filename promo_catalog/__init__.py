"""Promo catalog builder: spreadsheet of promotions -> paginated print catalog."""

__version__ = "0.1.0"
