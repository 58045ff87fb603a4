"""Medication reminder service."""
