"""Pricing and availability kernel for equipment rental bookings."""
