"""Agents that drive scenario execution: step runner, healer, classifier, validator."""
