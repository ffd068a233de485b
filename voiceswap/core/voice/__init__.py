"""Voice conversation: orchestration, speech, history and settlement polling.

Import from the submodules directly; this package does not re-export them so
that `voice.responses` stays importable from the swap formatting layer.
"""
