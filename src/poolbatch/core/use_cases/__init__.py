from poolbatch.core.use_cases.batch import BatchQueryService, run_batch

__all__ = ["BatchQueryService", "run_batch"]
