# journey_map/validator/errors.py
"""Journey map finding collection and formatting."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

# Message template: [FAIL] TYPE: step problem -> Fix: action
FINDING_TEMPLATE = "[{level}] {finding_type}: {step_id} {problem}\n  Fix: {fix_action}"


class LinkFinding:
    """One structural problem found in a compiled journey."""

    def __init__(
        self,
        finding_type: str,
        step_id: str,
        problem: str,
        fix_action: str,
        target: Optional[str] = None,
    ):
        self.finding_type = finding_type
        self.step_id = step_id
        self.problem = problem
        self.fix_action = fix_action
        self.target = target

    def format(self, level: str = "FAIL") -> str:
        return FINDING_TEMPLATE.format(
            level=level,
            finding_type=self.finding_type,
            step_id=self.step_id,
            problem=self.problem,
            fix_action=self.fix_action,
        )

    def sort_key(self) -> Tuple[str, str]:
        return (self.step_id, self.finding_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.finding_type,
            "step_id": self.step_id,
            "problem": self.problem,
            "fix_action": self.fix_action,
            "target": self.target,
        }


class ValidationResult:
    """Collects errors (broken links) and warnings (suspect configuration)."""

    def __init__(self):
        self.errors: List[LinkFinding] = []
        self.warnings: List[LinkFinding] = []

    def add_error(
        self,
        finding_type: str,
        step_id: str,
        problem: str,
        fix_action: str,
        target: Optional[str] = None,
    ):
        self.errors.append(LinkFinding(finding_type, step_id, problem, fix_action, target))

    def add_warning(
        self,
        finding_type: str,
        step_id: str,
        problem: str,
        fix_action: str,
        target: Optional[str] = None,
    ):
        self.warnings.append(LinkFinding(finding_type, step_id, problem, fix_action, target))

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def sorted_errors(self) -> List[LinkFinding]:
        return sorted(self.errors, key=lambda e: e.sort_key())

    def sorted_warnings(self) -> List[LinkFinding]:
        return sorted(self.warnings, key=lambda w: w.sort_key())

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "errors": [e.to_dict() for e in self.sorted_errors()],
            "warnings": [w.to_dict() for w in self.sorted_warnings()],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "status": "FAIL" if self.has_errors() else "PASS",
        }
