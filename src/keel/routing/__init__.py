"""Routing — method/uri route table with exact-then-pattern matching.

Routes are registered during setup; the table is read-only once the app
freezes.
"""

from keel.routing.route import Route, RouteMatch
from keel.routing.router import Router, to_response

__all__ = ["Route", "RouteMatch", "Router", "to_response"]
