"""
Library engines behind the orchestrator adapters.

Prompt memory, feedback learning, cognitive chains, sync, network status,
behavioural simulation, vision scoring and prompt insight.
"""
