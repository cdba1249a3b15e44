"""Backend encoders — pure transformers from an action sequence to calldata.

Every encoder is deterministic: identical input yields byte-identical
output, and the input sequence is never mutated or reordered.
"""
