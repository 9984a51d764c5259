"""
One-shot command entry points. Each module exposes ``main(argv=None) -> int``.
"""
