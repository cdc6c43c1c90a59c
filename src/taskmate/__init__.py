"""Taskmate: quick-add parsing and time-slot planning for a personal task manager."""
