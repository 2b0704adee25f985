from ._orchestrator import ImageBuildOrchestrator as ImageBuildOrchestrator
