"""
Seat Pricing Package

Pricing engine for seat-based SaaS subscriptions.
Resolves a plan's price and billing quantity for a user count using
flat, per-seat, tiered (step) or volume (graduated) pricing.
"""

__version__ = "1.0.0"
