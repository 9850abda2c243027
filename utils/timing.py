import time
from typing import Optional, Dict, Any
from contextlib import contextmanager

from utils.logger import setup_logger

logger = setup_logger(__name__)


class StageTimer:
    def __init__(self, operation: str):
        self.operation = operation
        self.stages: Dict[str, float] = {}
    
    @contextmanager
    def stage(self, stage_name: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stages[stage_name] = round((time.perf_counter() - start) * 1000, 2)
    
    @property
    def total_ms(self) -> float:
        return round(sum(self.stages.values()), 2)
    
    def log_summary(self, extra: Optional[Dict[str, Any]] = None):
        payload: Dict[str, Any] = {
            "operation": self.operation,
            "total_duration_ms": self.total_ms,
            "stages": self.stages,
        }
        if extra:
            payload.update(extra)
        
        logger.info(f"{self.operation} timing summary", extra=payload)
