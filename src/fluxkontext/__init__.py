"""Flux Kontext API - image editing and generation over Replicate's Flux models."""

__version__ = "0.1.0"

from fluxkontext.core.config import FluxKontextConfig, config

__all__ = [
    "FluxKontextConfig",
    "config",
]
