"""Storefront order fulfillment and inventory consistency engine."""
