"""Hostel System package.

This package is organized by feature modules (users, rooms, attendance, fees)
with a thin Flask controller layer over service/repository layers.
"""
