"""Services layer: steps, workflow graph and the orchestrator."""
