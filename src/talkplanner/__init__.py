"""Talk Planner: a conversational EthCC schedule assistant."""

__version__ = "0.1.0"
