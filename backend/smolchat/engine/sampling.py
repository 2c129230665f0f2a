"""Sampler chain configuration and the interface the generation loop drives.

The chain itself belongs to the inference engine: stages run in the order
repetition penalty, top-k, top-p, temperature, final draw. Stages that track
history learn about tokens through ``accept`` and forget everything on
``reset``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

from smolchat.config.settings import Settings

if TYPE_CHECKING:
    from smolchat.engine.base import InferenceEngine


@dataclass(frozen=True, slots=True)
class SamplerParams:
    top_k: int = 40
    top_p: float = 0.9
    temperature: float = 0.7
    repeat_penalty: float = 1.0
    repeat_last_n: int = 64
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.top_k < 0:
            raise ValueError("top_k must be >= 0")
        if not 0.0 < self.top_p <= 1.0:
            raise ValueError("top_p must be in (0, 1]")
        if self.temperature < 0:
            raise ValueError("temperature must be >= 0")
        if self.repeat_penalty <= 0:
            raise ValueError("repeat penalty must be positive")
        if self.repeat_last_n < 0:
            raise ValueError("repeat window must be non-negative")

    @property
    def greedy(self) -> bool:
        """A non-positive temperature collapses the draw to the argmax."""
        return self.temperature <= 0.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SamplerParams":
        return cls(
            top_k=settings.llm_top_k,
            top_p=settings.llm_top_p,
            temperature=settings.llm_temperature,
            repeat_penalty=settings.llm_repeat_penalty,
            repeat_last_n=settings.llm_repeat_last_n,
            seed=settings.llm_seed,
        )


class SamplerChain(Protocol):
    """Picks the next token from the engine's logits for its last decoded position."""

    def sample(self, engine: "InferenceEngine") -> int: ...

    def accept(self, token: int) -> None: ...

    def reset(self) -> None: ...

    def close(self) -> None: ...
