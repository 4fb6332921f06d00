"""Swipe, match and discovery services."""

from services.candidate_store import Candidate, CandidateFilter, CandidateQuery, CandidateStore, GeoPoint
from services.discovery import DiscoveryFeed, DiscoveryFeedBuilder
from services.match_detector import MatchDetector, MatchOutcome
from services.match_lifecycle import MatchLifecycleManager, MatchStats, MatchView
from services.swipe_ledger import SwipeLedger

__all__ = [
    "Candidate",
    "CandidateFilter",
    "CandidateQuery",
    "CandidateStore",
    "GeoPoint",
    "DiscoveryFeed",
    "DiscoveryFeedBuilder",
    "MatchDetector",
    "MatchOutcome",
    "MatchLifecycleManager",
    "MatchStats",
    "MatchView",
    "SwipeLedger",
]
