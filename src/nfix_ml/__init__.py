"""
nfix_ml — similarity-based classification of metabolites from nitrogen-fixing organisms.
Nearest-neighbour labels from a reference set, LOOCV evaluation, per-strain summaries.
"""
__all__ = ["data", "features", "store", "search", "models", "analysis", "config", "pipeline"]
