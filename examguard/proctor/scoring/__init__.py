"""Scoring modules"""

from .policy import PolicyEngine, RiskLevel, classify_risk

__all__ = ["PolicyEngine", "RiskLevel", "classify_risk"]
