"""Inference engine adapters and token sampling."""

from smolchat.engine.base import DECODE_OK, InferenceEngine
from smolchat.engine.sampling import SamplerChain, SamplerParams

__all__ = ["DECODE_OK", "InferenceEngine", "SamplerChain", "SamplerParams"]
