"""Choice processing helpers.

Centralizes validation so every caller that picks a choice by index (HTTP
routes, scripts, tests) goes through the same checks before the engine runs it.
"""
