#Expose the high-level pipeline pieces:
#Candidate filtering (hard rules)
#Scoring / ranking
#Dispatcher orchestrator (distance lookups + ranking in one call)
#Offer acceptance (winner selection, double-accept guard)

from .models import AcceptedOffer, DispatchCandidate, TripRequest
from .policy import DispatchPolicy, default_dispatch_policy
from .candidate_filter import build_base_candidates, exclusion_reason
from .scoring import rank_candidates
from .dispatcher import Dispatcher
from .acceptance import OfferBoard, pick_winner

__all__ = [
    "AcceptedOffer",
    "DispatchCandidate",
    "TripRequest",
    "DispatchPolicy",
    "default_dispatch_policy",
    "build_base_candidates",
    "exclusion_reason",
    "rank_candidates",
    "Dispatcher",
    "OfferBoard",
    "pick_winner",
]
