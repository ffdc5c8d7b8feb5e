"""
listing-sync: keep localized store listing text consistent across
App Store Connect and Google Play.

Components:
- catalog: locale canonicalization and storefront field rules
- snapshot: immutable per-locale snapshots and workload computation
- diff: cross-store and remote-vs-local listing diffs
- translation: translate-then-shorten pipeline with rate-limit retry
- changes: pending change queue and write plan
- apply: per-locale write fan-out with independent outcomes
- jobs: single-worker background preflight job runner
"""

__version__ = "0.1.0"
