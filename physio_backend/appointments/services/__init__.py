"""Appointment services: conflict detection and lifecycle writes."""
