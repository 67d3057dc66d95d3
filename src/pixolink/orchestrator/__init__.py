"""
Orchestration layer: event bus, module registry, connectors, adapters and
the pipeline orchestrator.

Import the orchestrator from ``pixolink.orchestrator.orchestrator`` or from
the top-level ``pixolink`` package.
"""
