"""Engine layer: worker pool for batch generation."""

from universegen.engine.worker_pool import WorkerPool

__all__ = ["WorkerPool"]
