"""Evaluation reporting."""

from .evaluation import ConfusionCounts, EvaluationReport, evaluate_model, report_to_dict

__all__ = ['ConfusionCounts', 'EvaluationReport', 'evaluate_model', 'report_to_dict']
