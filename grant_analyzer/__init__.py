"""Grant Analyzer.

Logs into a session-gated grant catalog, walks its listing pages,
enriches each grant with detail-page data, asks a language model for a
YES/NO verdict against caller requirements, and streams the results as
newline-delimited JSON.
"""

__version__ = "1.0.0"
