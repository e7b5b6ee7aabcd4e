"""Siteplan construction project scheduling backend."""
