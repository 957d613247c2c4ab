"""Lifecycle dispatch, invocation context and Lambda entry points."""
