"""Grant Analyzer — Analyzer Package.

Evaluates grants against caller requirements with a language model.
Components:
  - EvaluationClient: OpenAI-compatible chat completions client
  - GrantClassifier: prompt → service → verdict, with UNKNOWN fallback
  - ResponseParser: verdict decoding and validation
"""

from grant_analyzer.analyzer.llm_client import EvaluationClient
from grant_analyzer.analyzer.classifier import GrantClassifier
from grant_analyzer.analyzer.response_parser import ResponseParser

__all__ = [
    "EvaluationClient",
    "GrantClassifier",
    "ResponseParser",
]
