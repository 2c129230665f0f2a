"""llama.cpp backed inference engine (llama-cpp-python)."""

from __future__ import annotations

import logging
import os
from typing import Optional, Sequence

from huggingface_hub import hf_hub_download
import llama_cpp
from llama_cpp import Llama
from llama_cpp._internals import LlamaSampler

from smolchat.config.settings import Settings
from smolchat.engine.base import DECODE_OK
from smolchat.engine.sampling import SamplerParams
from smolchat.utils.exceptions import ModelNotLoadedError, TokenizationError

logger = logging.getLogger(__name__)

DECODE_FAILED = -1


def resolve_model_path(settings: Settings) -> str:
    """Return a local GGUF path, downloading from the Hub when none is configured.

    Raises:
        ModelNotLoadedError: If the local file is missing or the download fails
    """
    if settings.llm_model_path:
        if not os.path.isfile(settings.llm_model_path):
            raise ModelNotLoadedError(
                f"Model file not found: {settings.llm_model_path}",
                details={"model_path": settings.llm_model_path},
            )
        return settings.llm_model_path

    logger.info(
        "Downloading model '%s' from repo '%s'...",
        settings.llm_model_filename,
        settings.llm_repo_id,
    )
    try:
        return hf_hub_download(
            repo_id=settings.llm_repo_id,
            filename=settings.llm_model_filename,
            token=settings.hugging_face_hub_token,
        )
    except Exception as exc:
        logger.exception("Failed to download model")
        raise ModelNotLoadedError(
            f"Failed to download model: {exc}",
            details={"repo_id": settings.llm_repo_id},
        ) from exc


class LlamaCppEngine:
    """Adapter exposing one ``Llama`` model/context pair as an ``InferenceEngine``.

    Not thread-safe; the owning session serializes access.
    """

    def __init__(self, llama: Llama) -> None:
        self._llama: Optional[Llama] = llama
        self._n_ctx = llama.n_ctx()
        self._n_vocab = llama.n_vocab()
        self._eos = llama.token_eos()

    @classmethod
    def load(cls, settings: Settings) -> "LlamaCppEngine":
        """Resolve, load and wrap the configured model. Blocking."""
        model_path = resolve_model_path(settings)
        logger.info("Loading model into memory via llama.cpp from %s", model_path)
        try:
            llama = Llama(
                model_path=model_path,
                n_ctx=settings.llm_context_size,
                n_threads=settings.llm_n_threads,
                # the whole prompt goes through a single llama_decode call
                n_batch=settings.llm_context_size,
                n_gpu_layers=settings.llm_gpu_layers,
                logits_all=False,
                verbose=settings.log_level == "DEBUG",
            )
        except Exception as exc:
            logger.exception("Failed to load model")
            raise ModelNotLoadedError(
                f"Failed to load model: {exc}",
                details={"model_path": model_path},
            ) from exc
        logger.info(
            "Model loaded (n_ctx=%d, n_vocab=%d, threads=%d)",
            llama.n_ctx(),
            llama.n_vocab(),
            settings.llm_n_threads,
        )
        return cls(llama)

    @property
    def llama(self) -> Llama:
        if self._llama is None:
            raise ModelNotLoadedError("llama.cpp context has been released")
        return self._llama

    @property
    def n_ctx(self) -> int:
        return self._n_ctx

    @property
    def n_vocab(self) -> int:
        return self._n_vocab

    @property
    def eos_token(self) -> int:
        return self._eos

    def tokenize(self, text: str) -> list[int]:
        try:
            return list(self.llama.tokenize(text.encode("utf-8"), add_bos=True, special=False))
        except RuntimeError as exc:
            raise TokenizationError(f"Tokenization failed: {exc}") from exc

    def clear(self) -> None:
        # eval() drops cached cells at and after n_tokens, so rewinding to 0 clears the memory
        self.llama.reset()

    def decode(self, tokens: Sequence[int], position: int) -> int:
        llama = self.llama
        if position != llama.n_tokens:
            logger.error("Decode position %d does not match context length %d", position, llama.n_tokens)
            return DECODE_FAILED
        try:
            llama.eval(list(tokens))
        except RuntimeError as exc:
            logger.error("llama_decode failed at position %d: %s", position, exc)
            return DECODE_FAILED
        return DECODE_OK

    def make_sampler(self, params: SamplerParams) -> "LlamaSamplerChain":
        return LlamaSamplerChain(params)

    def token_to_text(self, token: int) -> bytes:
        return self.llama.detokenize([token])

    def close(self) -> None:
        if self._llama is not None:
            logger.info("Releasing llama.cpp model instance")
            self._llama.close()
            self._llama = None


class LlamaSamplerChain:
    """llama.cpp sampler chain drawing from the context's last decoded position.

    ``llama_sampler_sample`` already feeds the drawn token back into the chain,
    so the caller's ``accept`` of that same token is not forwarded again.
    """

    def __init__(self, params: SamplerParams) -> None:
        chain = LlamaSampler()
        if params.repeat_penalty != 1.0 and params.repeat_last_n > 0:
            chain.add_penalties(
                penalty_last_n=params.repeat_last_n,
                penalty_repeat=params.repeat_penalty,
                penalty_freq=0.0,
                penalty_present=0.0,
            )
        if params.greedy:
            chain.add_greedy()
        else:
            if params.top_k > 0:
                chain.add_top_k(params.top_k)
            if params.top_p < 1.0:
                chain.add_top_p(params.top_p, 1)
            chain.add_temp(params.temperature)
            chain.add_dist(llama_cpp.LLAMA_DEFAULT_SEED if params.seed is None else params.seed)
        self._chain: Optional[LlamaSampler] = chain
        self._drawn: Optional[int] = None
        logger.info(
            "Sampler chain configured (top_k=%d, top_p=%.2f, temp=%.2f, repeat_penalty=%.2f)",
            params.top_k,
            params.top_p,
            params.temperature,
            params.repeat_penalty,
        )

    @property
    def chain(self) -> LlamaSampler:
        if self._chain is None:
            raise ModelNotLoadedError("Sampler chain has been released")
        return self._chain

    def sample(self, engine: LlamaCppEngine) -> int:
        token = int(llama_cpp.llama_sampler_sample(self.chain.sampler, engine.llama.ctx, -1))
        self._drawn = token
        return token

    def accept(self, token: int) -> None:
        if token == self._drawn:
            self._drawn = None
            return
        llama_cpp.llama_sampler_accept(self.chain.sampler, token)

    def reset(self) -> None:
        self._drawn = None
        llama_cpp.llama_sampler_reset(self.chain.sampler)

    def close(self) -> None:
        if self._chain is not None:
            self._chain.close()
            self._chain = None
