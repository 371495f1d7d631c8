"""Step registry boundary between the harness and the host test framework.

The harness never parses scenario text itself. It hands pattern/handler pairs
to a ``StepRegistry``; the host framework does the matching and calls the
handler with the host context and the named groups it captured.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import behave
from behave import matchers

logger = logging.getLogger(__name__)

STEP_TYPES = ("given", "when", "then", "step")
"""Step keywords; "step" matches any keyword."""

StepHandler = Callable[..., Any]


class StepRegistry(Protocol):
    """Anything that accepts phrase-to-handler bindings."""

    def add(self, step_type: str, pattern: str, handler: StepHandler) -> None:
        """Bind a regular expression phrase to a handler."""
        ...


@dataclass(frozen=True)
class StepDefinition:
    """A pattern bound to a handler."""

    step_type: str
    pattern: str
    handler: StepHandler

    @property
    def regex(self) -> re.Pattern[str]:
        return re.compile(self.pattern)


def _check_step_type(step_type: str) -> None:
    if step_type not in STEP_TYPES:
        raise ValueError(
            f"Unknown step type {step_type!r}, expected one of {STEP_TYPES}"
        )


class DictStepRegistry:
    """Plain in-memory registry for hosts without a step matcher.

    Phrases must match a pattern completely.

    Attributes
    ----------
    definitions : list[StepDefinition]
        Bindings in registration order
    """

    def __init__(self) -> None:
        self.definitions: list[StepDefinition] = []

    def add(self, step_type: str, pattern: str, handler: StepHandler) -> None:
        """Bind ``pattern`` to ``handler``.

        Raises
        ------
        ValueError
            If the step type is unknown, or the same pattern is already
            bound for that step type
        """
        _check_step_type(step_type)
        re.compile(pattern)

        for definition in self.definitions:
            if definition.step_type == step_type and definition.pattern == pattern:
                raise ValueError(f"Step already registered: {step_type} {pattern!r}")

        self.definitions.append(StepDefinition(step_type, pattern, handler))
        logger.debug("Registered step %s %r", step_type, pattern)

    def match(
        self, step_type: str, text: str
    ) -> tuple[StepHandler, dict[str, str]] | None:
        """Find the handler for a phrase.

        Parameters
        ----------
        step_type : str
            Keyword of the step being matched
        text : str
            Step text without its keyword

        Returns
        -------
        tuple[StepHandler, dict[str, str]] | None
            Handler and captured named groups, or None when nothing matches
        """
        for definition in self.definitions:
            if definition.step_type not in (step_type, "step"):
                continue
            found = definition.regex.fullmatch(text)
            if found is not None:
                return definition.handler, found.groupdict()
        return None

    def dispatch(self, step_type: str, text: str, context: Any) -> Any:
        """Run the handler bound to a phrase.

        Raises
        ------
        LookupError
            If no pattern matches ``text``
        """
        matched = self.match(step_type, text)
        if matched is None:
            raise LookupError(f"No step matches: {step_type} {text!r}")

        handler, params = matched
        return handler(context, **params)


class BehaveStepRegistry:
    """Registers bindings with Behave using its regular-expression matcher.

    The matcher that was active before each registration is put back
    afterwards, so a host suite that chose its own matcher keeps it. Pass
    ``restore_matcher`` to switch to a named matcher instead.
    """

    def __init__(self, restore_matcher: str | None = None) -> None:
        self.restore_matcher = restore_matcher

    def add(self, step_type: str, pattern: str, handler: StepHandler) -> None:
        _check_step_type(step_type)
        decorator = getattr(behave, step_type)

        holder = _matcher_holder()
        previous = getattr(holder, "current_matcher", None)

        behave.use_step_matcher("re")
        try:
            decorator(_anchored(pattern))(handler)
        finally:
            if self.restore_matcher is not None:
                behave.use_step_matcher(self.restore_matcher)
            elif previous is not None:
                holder.current_matcher = previous
            else:
                behave.use_step_matcher("parse")

        logger.debug("Registered behave step %s %r", step_type, pattern)


def _matcher_holder() -> Any:
    # Behave 1.2.7+ keeps the active matcher on a factory object; 1.2.6 keeps
    # it as a module global.
    get_factory = getattr(matchers, "get_matcher_factory", None)
    if get_factory is not None:
        return get_factory()
    return matchers


def _anchored(pattern: str) -> str:
    # Behave 1.2.7+ adds ^...$ itself and rejects explicit markers.
    pattern = pattern.removeprefix("^").removesuffix("$")
    if not pattern.endswith(r"\Z"):
        pattern += r"\Z"
    return pattern
