#
# src/alertd/testing/__init__.py
#
"""
Ad-hoc rule test execution sub-package for alertd.
"""
from .channel import QueueSubscriber
from .job import RuleTestResult, RuleTestStatus, TestJob
from .options import OutputFormat, RuleTestType, TestOptions
from .runner import RuleTestRunner

__all__ = [
    "OutputFormat",
    "QueueSubscriber",
    "RuleTestResult",
    "RuleTestRunner",
    "RuleTestStatus",
    "RuleTestType",
    "TestJob",
    "TestOptions",
]

# 🔼⚙️
