"""Core library - persisted state, redaction, channels and the wait-reply engine.

Imported by hooks/ and the CLI; nothing in lib/ imports from hooks/.
"""
