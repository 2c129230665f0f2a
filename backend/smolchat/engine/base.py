"""Inference engine capability consumed by the generation session."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from smolchat.engine.sampling import SamplerChain, SamplerParams

DECODE_OK = 0


@runtime_checkable
class InferenceEngine(Protocol):
    """Minimal surface of a loaded model plus its mutable context.

    ``decode`` evaluates ``tokens`` starting at ``position`` and returns a
    status code where ``0`` means success. Only the last token of each batch
    produces logits; the engine's sampler chain draws from that row.
    """

    @property
    def n_ctx(self) -> int: ...

    @property
    def n_vocab(self) -> int: ...

    @property
    def eos_token(self) -> int: ...

    def tokenize(self, text: str) -> list[int]: ...

    def clear(self) -> None: ...

    def decode(self, tokens: Sequence[int], position: int) -> int: ...

    def make_sampler(self, params: SamplerParams) -> SamplerChain: ...

    def token_to_text(self, token: int) -> bytes: ...

    def close(self) -> None: ...
