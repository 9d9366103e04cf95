"""Audit-trail receipt uploads."""
