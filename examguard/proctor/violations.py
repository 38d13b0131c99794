"""
Violation Log - Append-only, arrival-ordered record of reported violations
"""

import copy
import logging
import threading
from typing import Any, Dict, List, Optional

from .clock import parse_timestamp

logger = logging.getLogger(__name__)

Violation = Dict[str, Any]


_NO_BOUND = object()


def _parse_bound(value: Optional[str]) -> Any:
    """Parsed bound, _NO_BOUND when absent, None when unparsable"""
    if value is None or value == "":
        return _NO_BOUND
    return parse_timestamp(value)


class ViolationLog:
    """
    Stores violation records in the order they arrive.
    
    Records are free-form dicts; only `sessionId`, `studentId` and
    `timestamp` are interpreted. Stored records are never modified and
    readers always receive copies.
    """
    
    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[Violation] = []
    
    def append(self, violation: Violation) -> Violation:
        """Store a copy of the record. Never rejects."""
        record = copy.deepcopy(violation)
        with self._lock:
            self._records.append(record)
        return copy.deepcopy(record)
    
    def _snapshot(self) -> List[Violation]:
        with self._lock:
            return list(self._records)
    
    def query(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        student_id: Optional[str] = None
    ) -> List[Violation]:
        """
        Filter violations. All supplied filters must match.
        
        Args:
            start_date: Keep records with timestamp >= start_date
            end_date: Keep records with timestamp <= end_date
            student_id: Keep records whose studentId matches exactly
            
        Returns:
            Matching records in arrival order. An unparsable date bound
            matches nothing.
        """
        start = _parse_bound(start_date)
        end = _parse_bound(end_date)
        
        if start is None or end is None:
            logger.info(f"Unparsable date filter (startDate={start_date!r}, endDate={end_date!r}), no matches")
            return []
        
        results = []
        for record in self._snapshot():
            if start is not _NO_BOUND or end is not _NO_BOUND:
                ts = parse_timestamp(record.get("timestamp"))
                # Unparsable timestamps never satisfy a date bound
                if ts is None:
                    continue
                if start is not _NO_BOUND and ts < start:
                    continue
                if end is not _NO_BOUND and ts > end:
                    continue
            
            if student_id and record.get("studentId") != student_id:
                continue
            
            results.append(copy.deepcopy(record))
        
        return results
    
    def recent_tail(self, n: int) -> List[Violation]:
        """Last n records in arrival order"""
        if n <= 0:
            return []
        return copy.deepcopy(self._snapshot()[-n:])
    
    def for_session(self, session_id: str) -> List[Violation]:
        return [
            copy.deepcopy(record)
            for record in self._snapshot()
            if record.get("sessionId") == session_id
        ]
    
    def count(self) -> int:
        return len(self._records)
