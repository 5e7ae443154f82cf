# collabart/scenario.py
"""
Scenario files.

A scenario is a YAML list of commands run in order against one engine,
each with an optional expectation:

    name: mint flow
    steps:
      - command: register-artist
        args: {caller: artist1, name: John Doe}
        expect: ok
      - command: create-artwork
        args: {caller: artist1, title: T, description: D}
        expect: {ok: 1}
      - command: mint-nft
        args: {caller: artist1, artwork_id: 1, price: 1000}
        expect: Unauthorized

`expect` accepts `ok`, `{ok: <value>}`, an error name (NotFound,
Unauthorized, AlreadyExists), a numeric code, or `{err: <name or code>}`.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .commands import dispatch, get_command
from .engine import Engine
from .errors import CommandError, ErrorCode, Result

logger = logging.getLogger(__name__)

_CODES_BY_LABEL = {code.label.lower(): code for code in ErrorCode}


def _parse_code(value: Any) -> ErrorCode:
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return ErrorCode(value)
        except ValueError:
            pass
    elif isinstance(value, str) and value.lower() in _CODES_BY_LABEL:
        return _CODES_BY_LABEL[value.lower()]
    raise CommandError(f"Unknown error expectation: {value!r}")


@dataclass
class Expectation:
    """What a step's result should look like."""
    ok: bool
    value: Any = None
    check_value: bool = False
    code: Optional[ErrorCode] = None

    @classmethod
    def parse(cls, raw: Any) -> Optional["Expectation"]:
        if raw is None:
            return None
        if raw == "ok" or raw is True:
            return cls(ok=True)
        if isinstance(raw, dict):
            if "ok" in raw:
                return cls(ok=True, value=raw["ok"], check_value=True)
            if "err" in raw:
                return cls(ok=False, code=_parse_code(raw["err"]))
            raise CommandError(f"Unknown expectation: {raw!r}")
        return cls(ok=False, code=_parse_code(raw))

    def matches(self, result: Result) -> bool:
        if self.ok:
            if not result.ok:
                return False
            if not self.check_value:
                return True
            # True == 1 in Python; ok(true) must not match an id of 1
            return type(result.value) is type(self.value) and result.value == self.value
        return not result.ok and result.error.code == self.code

    def describe(self) -> str:
        if self.ok:
            return f"ok({self.value!r})" if self.check_value else "ok"
        return f"err({self.code.label})"


@dataclass
class Step:
    command: str
    args: Dict[str, Any] = field(default_factory=dict)
    expect: Optional[Expectation] = None


@dataclass
class StepOutcome:
    """Result of running one step."""
    index: int
    step: Step
    result: Result

    @property
    def matched(self) -> bool:
        return self.step.expect is None or self.step.expect.matches(self.result)

    def describe(self) -> str:
        wire = self.result.to_wire()
        line = f"[{self.index}] {self.step.command}: {wire['type']}({wire['value']!r})"
        if not self.matched:
            line += f"  expected {self.step.expect.describe()}"
        return line


@dataclass
class ScenarioReport:
    name: str
    outcomes: List[StepOutcome] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(o.matched for o in self.outcomes)

    @property
    def mismatches(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if not o.matched]


@dataclass
class Scenario:
    """Parsed scenario file."""
    name: str
    steps: List[Step]

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "Scenario":
        """Parse a scenario from a YAML string."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise CommandError(f"Invalid scenario YAML: {e}") from e
        if isinstance(data, list):
            data = {"steps": data}
        if not isinstance(data, dict):
            raise CommandError("Scenario must be a mapping or a list of steps")

        steps = []
        for i, step_data in enumerate(data.get("steps") or [], start=1):
            if not isinstance(step_data, dict) or "command" not in step_data:
                raise CommandError(f"Step {i}: expected a mapping with a 'command' key")
            command = step_data["command"]
            args = step_data.get("args") or {}
            if not isinstance(args, dict):
                raise CommandError(f"Step {i}: 'args' must be a mapping")
            # Fail on unknown commands and bad arguments before anything runs
            get_command(command).bind(args)
            steps.append(Step(
                command=command,
                args=args,
                expect=Expectation.parse(step_data.get("expect")),
            ))

        return cls(name=data.get("name", "unnamed"), steps=steps)

    @classmethod
    def from_file(cls, path: Path | str) -> "Scenario":
        """Load a scenario from a YAML file."""
        with open(path, "r") as f:
            return cls.from_yaml(f.read())


class ScenarioRunner:
    """
    Runs scenarios against an engine.

    With stop_on_mismatch, the run ends at the first step whose result does
    not match its expectation.
    """

    def __init__(self, engine: Engine, stop_on_mismatch: bool = False):
        self.engine = engine
        self.stop_on_mismatch = stop_on_mismatch

    def run(self, scenario: Scenario) -> ScenarioReport:
        report = ScenarioReport(name=scenario.name)
        for index, step in enumerate(scenario.steps, start=1):
            result = dispatch(self.engine, step.command, step.args)
            outcome = StepOutcome(index=index, step=step, result=result)
            report.outcomes.append(outcome)

            if not outcome.matched:
                logger.warning(f"Scenario {scenario.name}: {outcome.describe()}")
                if self.stop_on_mismatch:
                    break
        return report
