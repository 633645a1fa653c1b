"""Finite state machine helper for status fields.

Usage:
    from erp.utils.fsm import TransitionValidator
    STATUS_FSM = TransitionValidator({
        'active': {'inactive'},
        'inactive': {'active'},
    })
    STATUS_FSM.assert_can_transition(current_status, target_status)

Aborts with 400 on an unknown state or a disallowed transition.
"""
from __future__ import annotations
from typing import Dict, Set
from flask import abort


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    @property
    def states(self):
        return tuple(self.graph)

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if target not in self.graph:
            abort(400, description=f"{self.field_name} must be one of: {', '.join(self.states)}")
        if current == target:
            abort(400, description=f"{self.field_name} already {current}")
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True


# active <-> inactive is the only lifecycle the taxonomy records know
STATUS_TOGGLE_FSM = TransitionValidator({
    'active': {'inactive'},
    'inactive': {'active'},
})

__all__ = ['TransitionValidator', 'STATUS_TOGGLE_FSM']
