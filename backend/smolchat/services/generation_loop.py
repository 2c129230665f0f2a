"""Autoregressive decode/sample/stop loop for a single request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from smolchat.engine.base import DECODE_OK, InferenceEngine
from smolchat.engine.sampling import SamplerChain

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    MAX_TOKENS = "max_tokens_reached"
    END_OF_SEQUENCE = "end_of_sequence"
    INVALID_TOKEN = "invalid_token"
    DECODE_FAILURE = "decode_failure"


@dataclass(slots=True)
class GenerationResult:
    """Accumulated completion text plus why generation stopped."""

    text: str
    stop_reason: StopReason
    n_prompt_tokens: int
    n_generated: int


class GenerationLoop:
    """State machine driving one completion.

    The engine must already hold the decoded prompt (``position`` tokens) with
    logits for its last position. Every call to :meth:`step` either continues
    (returns ``None``) or stops with a :class:`StopReason`.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        sampler: SamplerChain,
        position: int,
        max_tokens: int,
    ) -> None:
        self._engine = engine
        self._sampler = sampler
        self._eos = engine.eos_token
        self._n_vocab = engine.n_vocab
        self._start = position
        self.position = position
        self.max_tokens = max(0, max_tokens)
        self.n_generated = 0
        self._buffer = bytearray()

    @property
    def text(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")

    def step(self) -> Optional[StopReason]:
        if self.n_generated >= self.max_tokens:
            return StopReason.MAX_TOKENS

        token = self._sampler.sample(self._engine)
        if self.n_generated < 5 or self.n_generated % 10 == 0:
            logger.debug("Token %d: %d", self.n_generated, token)

        if token == self._eos:
            logger.debug("EOS token encountered at step %d", self.n_generated)
            return StopReason.END_OF_SEQUENCE

        if token < 0 or token >= self._n_vocab:
            logger.error("Invalid token sampled: %d", token)
            return StopReason.INVALID_TOKEN

        # control tokens may render to nothing
        self._buffer.extend(self._engine.token_to_text(token))
        self._sampler.accept(token)

        status = self._engine.decode([token], self.position)
        if status != DECODE_OK:
            logger.error("Decode failed at step %d with status %d", self.n_generated, status)
            return StopReason.DECODE_FAILURE

        self.position += 1
        self.n_generated += 1
        return None

    def run(self) -> GenerationResult:
        while True:
            reason = self.step()
            if reason is not None:
                break

        logger.debug(
            "Generation loop finished: %s after %d tokens (%d bytes)",
            reason.value,
            self.n_generated,
            len(self._buffer),
        )
        return GenerationResult(
            text=self.text,
            stop_reason=reason,
            n_prompt_tokens=self._start,
            n_generated=self.n_generated,
        )
