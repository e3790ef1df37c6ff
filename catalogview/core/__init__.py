"""Core change-detection and materialization engine."""
