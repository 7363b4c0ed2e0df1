import json
import logging

from .errors import BridgeError, ResolutionError
from .models import Match

logger = logging.getLogger(__name__)


class MatchResolver:
    """Fetches full match details once; any failure ends the flow."""

    def __init__(self, context):
        self.context = context

    def resolve(self, match_id: str, queue: str) -> Match:
        try:
            data = self.context.call_playfab(
                lambda token: self.context.playfab.get_match(token, match_id, queue, return_member_attributes=True)
            )
            match = Match.from_playfab(data, queue)
        except BridgeError as e:
            raise ResolutionError(match_id, str(e)) from e

        if match.match_id != match_id:
            raise ResolutionError(match_id, f"backend returned match {match.match_id}")

        logger.info(f"GetMatch-Members: {json.dumps([m.entity_id for m in match.members])}")
        logger.info(f"GetMatch-RegionPreferences: {json.dumps(list(match.region_preferences))}")
        return match
