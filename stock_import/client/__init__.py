"""Streaming submission client: frame decoding, protocol state, transport."""
