"""Local explanations of fitted defect models."""
