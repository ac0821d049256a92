"""Middleend package - cdecl lowering and Swift-side conversion steps."""
