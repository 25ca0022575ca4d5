"""Test suite for claude-code-orchestrator."""
