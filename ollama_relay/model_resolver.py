"""
Model availability check with host negotiation.

Before a generation is dispatched the requested model is looked up on the
target connection. When it is missing the calling host may be asked to pick
a replacement. The model list is advisory: if it cannot be fetched the
request proceeds with the original model.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from ollama_relay.adapters.base import InferenceBackend

logger = logging.getLogger(__name__)

MODEL_FIELD = "modelName"


# ─────────────────────────────────────────────────────────────────────
# NEGOTIATION OUTCOMES
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NegotiationAccepted:
    value: Optional[str]


@dataclass(frozen=True)
class NegotiationDeclined:
    pass


@dataclass(frozen=True)
class NegotiationUnsupported:
    reason: str = ""


NegotiationOutcome = Union[NegotiationAccepted, NegotiationDeclined, NegotiationUnsupported]


class Negotiator(Protocol):
    """Asks the calling host to pick one option from an enumerated list."""

    async def choose(
        self,
        message: str,
        field: str,
        title: str,
        description: str,
        options: list[str],
        default: str,
    ) -> NegotiationOutcome:
        ...


# ─────────────────────────────────────────────────────────────────────
# RESOLUTION OUTCOMES
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Proceed:
    model: str


@dataclass(frozen=True)
class ModelNotFound:
    model: str

    @property
    def message(self) -> str:
        return f"Model '{self.model}' not found."


@dataclass(frozen=True)
class SelectionDeclined:
    model: str

    @property
    def message(self) -> str:
        return f"Model '{self.model}' not found and no alternative was selected."


ModelResolution = Union[Proceed, ModelNotFound, SelectionDeclined]


def normalize_model_list(models) -> list[str]:
    """Drop blanks, deduplicate case-insensitively, sort case-insensitively."""
    unique: dict[str, str] = {}
    for name in models:
        if not name or not name.strip():
            continue
        unique.setdefault(name.casefold(), name)
    return sorted(unique.values(), key=str.casefold)


async def resolve_model(
    client: InferenceBackend,
    model: str,
    negotiator: Optional[Negotiator] = None,
    connection_label: str = "default",
) -> ModelResolution:
    """
    Decide which model to run.

    Returns Proceed(model) when the model exists or the list is unavailable,
    ModelNotFound when it is missing and there is no negotiator, and
    Proceed(replacement) or SelectionDeclined after negotiating with the host.
    """
    try:
        available = normalize_model_list(await client.list_models())
    except Exception as e:
        logger.warning(f"Error retrieving model list from '{connection_label}': {e}. Proceeding without validation.")
        return Proceed(model)

    if not available:
        return Proceed(model)

    wanted = model.casefold()
    if any(name.casefold() == wanted for name in available):
        return Proceed(model)

    if negotiator is None:
        return ModelNotFound(model)

    logger.info(f"Model '{model}' was not found on '{connection_label}'. Asking the host for a replacement.")
    outcome = await negotiator.choose(
        message=(
            f"The model '{model}' was not found on '{connection_label}'. "
            "Please choose another model to continue."
        ),
        field=MODEL_FIELD,
        title="Select an Ollama model",
        description=f"Pick a model available on '{connection_label}'.",
        options=available,
        default=available[0],
    )

    if isinstance(outcome, NegotiationAccepted):
        selected = (outcome.value or "").strip()
        if selected:
            logger.info(f"Host selected model '{selected}'.")
            return Proceed(selected)
        logger.warning(f"Negotiation response did not contain a valid '{MODEL_FIELD}'.")
        return SelectionDeclined(model)

    if isinstance(outcome, NegotiationUnsupported):
        logger.warning(f"Host cannot negotiate a model: {outcome.reason or 'unsupported'}")
    else:
        logger.info("Model selection declined or cancelled by the host.")
    return SelectionDeclined(model)
