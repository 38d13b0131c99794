"""ExamGuard - exam proctoring session and violation tracking service"""

__version__ = "1.0.0"
