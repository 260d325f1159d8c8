"""
Presentation layer: summaries, signals and coaching playbooks
"""

from .diagnostics import build_summary, build_signals
from .coaching import build_coaching_plan, build_intervention_notes

__all__ = ['build_summary', 'build_signals', 'build_coaching_plan', 'build_intervention_notes']
