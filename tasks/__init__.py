# Tasks package - sitespeed analysis jobs
from .analysis import AnalysisPipeline, JobState, build_response
from .runner import SitespeedRunner, ToolResult, ToolRunner

__all__ = [
    "AnalysisPipeline",
    "JobState",
    "build_response",
    "SitespeedRunner",
    "ToolResult",
    "ToolRunner",
]
