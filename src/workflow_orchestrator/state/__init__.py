"""Persistence of workflow instance state."""
