"""Feature selection for defect models."""
