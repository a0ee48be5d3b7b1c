"""Command-line entry points: cpghmm-find, cpghmm-train, cpghmm-decode."""
