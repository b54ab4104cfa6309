"""
Pitch Pipeline Module

Architecture:
- agents/     — One role per pipeline stage (scout, analyst, scientist, editor, etc.)
- workflows/  — Stage registry and prompt composition
- orchestrator.py — Sequences stages, runs gates, checkpoints progress
- state.py    — Run context, checkpoint stores, run history
- signals.py  — Pure parsers turning free text into rejection/score signals
- gates.py    — Rejection and score gates (pivot loops)
- revision.py — Bounded draft -> critique -> revise loop
"""
