"""Shape classification, suspension point safety and whole-body verdicts"""
from .flow import find_suspension_points, iter_own_nodes, summarize_flow
from .safety import judge_point, produced_type
from .shape import candidate_rejection, extract_body, is_candidate
from .verdict import judge_body

__all__ = [
    'find_suspension_points', 'iter_own_nodes', 'summarize_flow',
    'judge_point', 'produced_type',
    'candidate_rejection', 'extract_body', 'is_candidate',
    'judge_body'
]
