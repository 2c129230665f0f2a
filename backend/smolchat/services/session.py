"""In-process generation session owning the single llama.cpp model/context."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, Optional

from smolchat.config.settings import Settings
from smolchat.engine.base import DECODE_OK, InferenceEngine
from smolchat.engine.llama import LlamaCppEngine
from smolchat.engine.sampling import SamplerChain, SamplerParams
from smolchat.observability.metrics import record_generation
from smolchat.services.generation_loop import GenerationLoop, GenerationResult
from smolchat.utils.exceptions import (
    DecodeError,
    ModelNotLoadedError,
    PromptTooLongError,
    TokenizationError,
)

logger = logging.getLogger(__name__)

EngineFactory = Callable[[Settings], InferenceEngine]


class GenerationSession:
    """Exclusive owner of one engine (model + context) and its sampler chain.

    All generation is serialized through a single lock: the context and the
    sampler chain hold per-generation state and cannot be shared by two
    requests at once. Concurrent callers queue on the lock.
    """

    def __init__(
        self,
        settings: Settings,
        engine: Optional[InferenceEngine] = None,
        sampler: Optional[SamplerChain] = None,
        engine_factory: EngineFactory = LlamaCppEngine.load,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._sampler = sampler
        self._engine_factory = engine_factory
        self._lock = threading.Lock()
        self._load_lock = asyncio.Lock()

    async def startup(self) -> None:
        """Load the model and build the sampler chain.

        Runs the blocking load in a worker thread. Calling it again once the
        engine is loaded is a no-op.

        Raises:
            ModelNotLoadedError: If the model, context or sampler chain cannot
                be constructed
        """
        async with self._load_lock:
            if self._engine is not None:
                logger.debug("GenerationSession.startup invoked but model already loaded")
                return

            engine = await asyncio.to_thread(self._engine_factory, self._settings)
            try:
                sampler = engine.make_sampler(SamplerParams.from_settings(self._settings))
            except ValueError as exc:
                engine.close()
                raise ModelNotLoadedError(
                    f"Failed to initialize sampler chain: {exc}",
                ) from exc

            self._engine = engine
            self._sampler = sampler
            logger.info("Generation session ready (n_ctx=%d)", engine.n_ctx)

    async def shutdown(self) -> None:
        """Release the engine once any in-flight generation has finished."""
        async with self._load_lock:
            if self._engine is not None:
                await asyncio.to_thread(self._release)

    def _release(self) -> None:
        with self._lock:
            if self._sampler is not None:
                self._sampler.close()
            if self._engine is not None:
                self._engine.close()
            self._engine = None
            self._sampler = None

    @property
    def is_ready(self) -> bool:
        return self._engine is not None and self._sampler is not None

    @property
    def context_window(self) -> int:
        if self._engine is None:
            raise ModelNotLoadedError()
        return self._engine.n_ctx

    def run(self, prompt: str, max_tokens: int) -> GenerationResult:
        """Generate a completion for ``prompt``; blocks while another request runs.

        Raises:
            ModelNotLoadedError: If the engine was never constructed
            TokenizationError: If the tokenizer rejects the prompt
            PromptTooLongError: If the prompt does not fit the context window
            DecodeError: If decoding the prompt batch fails
        """
        with self._lock:
            engine, sampler = self._engine, self._sampler
            if engine is None or sampler is None:
                raise ModelNotLoadedError("Model or context not initialized")

            logger.info("Starting generation (prompt=%d chars, max_tokens=%d)", len(prompt), max_tokens)
            start = time.perf_counter()

            engine.clear()
            sampler.reset()

            tokens = engine.tokenize(prompt)
            if not tokens:
                raise TokenizationError("Prompt produced no tokens")
            logger.debug("Tokenized prompt to %d tokens", len(tokens))

            if len(tokens) >= engine.n_ctx:
                logger.error("Prompt too long: %d tokens, context size %d", len(tokens), engine.n_ctx)
                raise PromptTooLongError(len(tokens), engine.n_ctx)

            status = engine.decode(tokens, 0)
            if status != DECODE_OK:
                raise DecodeError(status)

            for token in tokens:
                sampler.accept(token)

            result = GenerationLoop(engine, sampler, len(tokens), max_tokens).run()

        duration = time.perf_counter() - start
        record_generation(result.stop_reason.value, duration, result.n_prompt_tokens, result.n_generated)
        logger.info(
            "Generation complete: %d tokens, %d chars, stop=%s (%.2fs)",
            result.n_generated,
            len(result.text),
            result.stop_reason.value,
            duration,
        )
        return result

    def generate(self, prompt: str, max_tokens: int) -> str:
        """Generate and return only the completion text."""
        return self.run(prompt, max_tokens).text

    async def agenerate(self, prompt: str, max_tokens: int) -> str:
        """Run :meth:`generate` in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.generate, prompt, max_tokens)
