"""Validation layer - Decodificación de payloads."""

from .payload_decoder import DecodeError, PayloadDecoder, decode, payload_text

__all__ = ["DecodeError", "PayloadDecoder", "decode", "payload_text"]
