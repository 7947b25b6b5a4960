"""
Prompt templates and message builders for the LLM decision oracle.

The system prompts describe the JSON shape each task must return; the
builders render an Observation into the text block the model reads,
attaching the screenshot as an image part when one was captured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from probe_agents.schemas.failure import AttemptFailure
    from probe_agents.schemas.observation import FormInfo, InteractiveElement, Observation
    from probe_agents.schemas.scenario import Step

ELEMENT_TEXT_LIMIT = 50
ELEMENT_VALUE_LIMIT = 20

# =============================================================================
# System Prompts
# =============================================================================

PLAN_PROMPT = """You are an AI test agent exercising a web application.
Your task is to plan actions that achieve the given goal from the current page state.

Guidelines:
1. Analyze the available interactive elements
2. Plan a sequence of actions to achieve the goal
3. Consider potential edge cases and loading states
4. Prefer semantic selectors (role, aria-label) over CSS paths
5. Include wait conditions after actions that trigger navigation or API calls

Respond with JSON in this format:
{
  "reasoning": "Your analysis of the page and approach",
  "actions": [
    {
      "type": "click" | "fill" | "select" | "check" | "uncheck" | "hover" | "press" | "scroll" | "wait" | "navigate",
      "target": "element id from the elements list",
      "value": "value for fill/select/press actions (optional)",
      "description": "What this action does",
      "wait_after": {"type": "url" | "element" | "network" | "time" | "text", "value": "...", "timeout_ms": 5000}
    }
  ],
  "expected_outcome": "What should happen after these actions",
  "confidence": 0.0-1.0,
  "alternative_strategies": ["backup approach 1", "backup approach 2"]
}

If the goal already appears satisfied (e.g., already on the correct page),
return an empty actions array with high confidence."""

VALIDATE_PROMPT = """You are validating whether a test step achieved its expected outcome.
Compare the before and after states and decide whether the step succeeded.

Consider:
- URL changes
- New elements appearing
- Toast notifications
- Error messages
- Form submissions

Respond with JSON:
{
  "passed": true | false,
  "reason": "Explanation of why the validation passed or failed"
}"""

DIAGNOSE_PROMPT = """You are diagnosing a test failure to classify whether it is:
- app_bug: A bug in the application being tested
- agent_bug: A bug in the test agent itself (wrong selectors, timing issues, etc.)
- environment_issue: Network problems, auth issues, or configuration problems
- unknown: Cannot determine the cause

Indicators of APP BUG:
- HTTP 5xx errors
- React/JavaScript errors in console
- Elements that should exist but don't
- Features that don't work as documented

Indicators of AGENT BUG:
- Selector not found but element is visible in screenshot
- Timing issues (element not ready)
- Wrong element clicked

Respond with JSON:
{
  "classification": "app_bug" | "agent_bug" | "environment_issue" | "unknown",
  "confidence": 0.0-1.0,
  "title": "Short, descriptive title for an issue tracker",
  "description": "Detailed explanation of the bug",
  "severity": "critical" | "high" | "medium" | "low",
  "reproduction_steps": ["Step 1", "Step 2"],
  "expected_behavior": "What should have happened",
  "actual_behavior": "What actually happened"
}"""


# =============================================================================
# Formatting Helpers
# =============================================================================


def format_element(element: InteractiveElement) -> str:
    """Render one catalog entry as a single prompt line."""
    parts = [f"[{element.id}] {element.type}"]
    if element.text:
        parts.append(f'"{element.text[:ELEMENT_TEXT_LIMIT]}"')
    if element.placeholder:
        parts.append(f'placeholder="{element.placeholder}"')
    if element.aria_label:
        parts.append(f'aria="{element.aria_label}"')
    if element.disabled:
        parts.append("(disabled)")
    if element.value:
        parts.append(f'value="{element.value[:ELEMENT_VALUE_LIMIT]}"')
    return " ".join(parts)


def format_form(form: FormInfo) -> str:
    lines = [f"Form: {form.id}", "Fields:"]
    for field in form.fields:
        line = f"  - {field.label or field.name} ({field.type})"
        if field.required:
            line += " *"
        if field.value:
            line += f' = "{field.value}"'
        lines.append(line)
    return "\n".join(lines)


def _format_network_errors(observation: Observation, with_method: bool = False) -> list[str]:
    lines = []
    for err in observation.network_errors:
        detail = err.status if err.status is not None else err.error
        prefix = f"{err.method} " if with_method else ""
        lines.append(f"{prefix}{err.url}: {detail}")
    return lines


def _format_toasts(observation: Observation) -> list[str]:
    return [f"[{t.type}] {t.message}" for t in observation.toasts]


def _image_part(screenshot: str) -> dict[str, Any]:
    return {
        "type": "image_url",
        "image_url": {"url": f"data:image/png;base64,{screenshot}"},
    }


def _user_message(text: str, screenshot: str | None) -> dict[str, Any]:
    content: list[dict[str, Any]] = [{"type": "text", "text": text}]
    if screenshot:
        content.append(_image_part(screenshot))
    return {"role": "user", "content": content}


# =============================================================================
# Message Builders
# =============================================================================


def build_plan_messages(
    goal: str, observation: Observation, recent_actions: list[str]
) -> list[dict[str, Any]]:
    """Build chat messages asking the model for an ActionPlan.

    Args:
        goal: Natural-language step goal
        observation: Current page state
        recent_actions: Action-history window, oldest first

    Returns:
        System and user messages in OpenAI chat format
    """
    console = "; ".join(observation.console_errors) or "None"
    network = "; ".join(_format_network_errors(observation)) or "None"
    toasts = "\n".join(_format_toasts(observation)) or "None"
    modals = ", ".join(m.title for m in observation.modals if m.visible) or "None visible"
    elements = "\n".join(
        format_element(e) for e in observation.interactive_elements if e.visible
    )
    forms = "\n\n".join(format_form(f) for f in observation.forms) or "No forms detected"
    previous = "\n".join(recent_actions) or "None"

    text = f"""## Goal
{goal}

## Current Page State
URL: {observation.url}
Title: {observation.title}
Loading: {"Yes" if observation.loading_indicators else "No"}
Console Errors: {console}
Network Errors: {network}

## Toasts/Notifications
{toasts}

## Modals
{modals}

## Interactive Elements
{elements}

## Forms
{forms}

## Previous Actions
{previous}
"""
    return [
        {"role": "system", "content": PLAN_PROMPT},
        _user_message(text, observation.screenshot),
    ]


def build_validate_messages(
    step: Step, before: Observation, after: Observation, expected_outcome: str
) -> list[dict[str, Any]]:
    """Build chat messages asking the model to judge an attempt."""
    toasts = "; ".join(_format_toasts(after)) or "None"
    errors = "; ".join(after.console_errors) or "None"

    text = f"""## Validation Request

Step: {step.name}
Goal: {step.goal}
Expected Outcome: {expected_outcome}

## Before State
URL: {before.url}
Title: {before.title}

## After State
URL: {after.url}
Title: {after.title}
Toasts: {toasts}
Errors: {errors}

Did the step achieve the expected outcome? Respond with JSON:
{{"passed": true/false, "reason": "explanation"}}
"""
    return [
        {"role": "system", "content": VALIDATE_PROMPT},
        _user_message(text, after.screenshot),
    ]


def build_diagnose_messages(
    step: Step,
    failure: AttemptFailure,
    observation: Observation,
    action_history: list[str],
) -> list[dict[str, Any]]:
    """Build chat messages asking the model to classify a failure."""
    console = "\n".join(observation.console_errors) or "None"
    network = "\n".join(_format_network_errors(observation, with_method=True)) or "None"
    history = "\n".join(action_history) or "None"

    text = f"""## Bug Diagnosis Request

Step: {step.name}
Goal: {step.goal}

## Error
{failure.message}
(phase: {failure.phase}, attempt: {failure.attempt}, kind: {failure.kind.value})

## Page State
URL: {observation.url}
Console Errors: {console}
Network Errors: {network}

## Recent Actions
{history}

Analyze this failure and classify it.
"""
    return [
        {"role": "system", "content": DIAGNOSE_PROMPT},
        _user_message(text, observation.screenshot),
    ]
