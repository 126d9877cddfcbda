"""Rewrite planning and application"""
from .synthesizer import ActionKind, RewriteAction, RewritePlan, plan_rewrite, rewrite_declaration
from .transformer import CoroutineSpelling, PlanTransformer, apply_plans, coroutine_spelling

__all__ = [
    'ActionKind', 'RewriteAction', 'RewritePlan', 'plan_rewrite', 'rewrite_declaration',
    'CoroutineSpelling', 'PlanTransformer', 'apply_plans', 'coroutine_spelling'
]
