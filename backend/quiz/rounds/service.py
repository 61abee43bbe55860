"""
Round lifecycle orchestration.

A round is `active` from creation until `expires_at`, `expired` after that
while unscored, and `scored` once its single Score row exists. Every
operation on an existing round first verifies the round token, checks that it
names the requested round, loads the round, and checks that the round belongs
to the token's session. Scoring writes go through the session ledger, which
guarantees one Score row per round; a second attempt returns the stored
snapshot instead of recomputing.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Protocol

import structlog

from quiz.logic.difficulty import (
    INTL_HARD_THRESHOLD,
    INTL_WEIGHTS,
    TOP5_HARD_THRESHOLD,
    TOP5_LEAGUES,
    Difficulty,
    compute_difficulty,
)
from quiz.logic.enums import DifficultyTier
from quiz.logic.exceptions import (
    ClueLimitReachedError,
    InvalidRoundTokenError,
    NotFoundError,
    RateLimitedError,
    RoundCompletedError,
    RoundExpiredError,
    RoundTokenExpiredError,
    TamperedRoundTokenError,
    UnauthorizedError,
)
from quiz.logic.guess import MAX_WRONG_GUESSES, grace_seconds_for, is_correct_guess
from quiz.logic.scoring import calculate_score
from quiz.rounds.types import (
    ABORT_TOO_MANY_WRONG_GUESSES,
    CheckResult,
    ClueStatus,
    GuessResult,
    IssuedRound,
    SurrenderResult,
)
from shared.auth.round_token import (
    InvalidTokenError,
    InvalidTokenSignatureError,
    RoundClaims,
    TokenExpiredError,
    create_round_token,
    verify_round_token,
)
from shared.dal.models import DEFAULT_MAX_CLUES, Round, ScoreRecord, SelectionFilter, SessionUpdate

if TYPE_CHECKING:
    from shared.dal import PlayerProfile, PlayerRepository, QuizSession, RoundRepository, SessionRepository

logger = structlog.get_logger()

DEFAULT_ROUND_TTL_SECONDS = 1800
PLAYER_PICK_ATTEMPTS = 5


class RequestLimiter(Protocol):
    """Per-key request throttle, e.g. quiz.server.rate_limit.RateLimiter."""

    def check(self, key: str) -> bool: ...

    def retry_after(self, key: str) -> int: ...


# Normal mode only draws players experienced enough to be guessable.
NORMAL_MODE_SELECTION = SelectionFilter(
    intl_weights=INTL_WEIGHTS,
    top5_leagues=list(TOP5_LEAGUES),
    min_weighted_intl=INTL_HARD_THRESHOLD,
    min_top5=TOP5_HARD_THRESHOLD,
)


class RoundService:
    """Start, restore, and play rounds against the round store and session ledger."""

    def __init__(
        self,
        rounds: RoundRepository,
        sessions: SessionRepository,
        players: PlayerRepository,
        *,
        secret: str,
        round_ttl_seconds: int = DEFAULT_ROUND_TTL_SECONDS,
        max_clues_allowed: int = DEFAULT_MAX_CLUES,
        rate_limiter: RequestLimiter | None = None,
    ) -> None:
        self._rounds = rounds
        self._sessions = sessions
        self._players = players
        self._secret = secret
        self._round_ttl_seconds = round_ttl_seconds
        self._max_clues_allowed = max_clues_allowed
        self._rate_limiter = rate_limiter

    # --- round creation ---

    async def start_round(
        self,
        session_id: str | None = None,
        player_id: int | None = None,
        *,
        hard_mode: bool = False,
    ) -> IssuedRound:
        """Create a round for `session_id` (a new session when None).

        Without an explicit `player_id` a random catalog player is drawn; in
        normal mode only players above the hard thresholds qualify and ultra
        picks are redrawn a few times.
        """
        session_id = session_id or str(uuid.uuid4())
        await self._sessions.get_or_create_session(session_id)

        if player_id is None:
            profile, difficulty = await self._pick_player(hard_mode=hard_mode)
        else:
            profile = await self._load_profile(player_id)
            difficulty = compute_difficulty(profile.stats)

        now = int(time.time())
        round_ = Round(
            round_id=str(uuid.uuid4()),
            player_id=profile.player_id,
            session_id=session_id,
            max_clues_allowed=self._max_clues_allowed,
            grace_seconds=grace_seconds_for(profile.transfer_count),
            started_at=now,
            expires_at=now + self._round_ttl_seconds,
        )
        await self._rounds.create_round(round_)
        logger.info(
            "round started",
            round_id=round_.round_id,
            session_id=session_id,
            tier=difficulty.tier,
            hard_mode=hard_mode,
        )
        return self._issue(round_, difficulty)

    async def restore_round(self, session_id: str) -> IssuedRound | None:
        """Re-serve the session's latest active, unscored round, or None."""
        round_ = await self._rounds.find_restorable(session_id, int(time.time()))
        if round_ is None:
            return None
        profile = await self._load_profile(round_.player_id)
        logger.info("round restored", round_id=round_.round_id, session_id=session_id)
        return self._issue(round_, compute_difficulty(profile.stats))

    # --- round play ---

    async def reveal_clue(self, round_id: str, token: str) -> ClueStatus:
        now = time.time()
        round_ = await self._authorize(round_id, token, now)
        self._ensure_not_expired(round_, now)
        await self._ensure_not_scored(round_)

        updated = await self._rounds.increment_clues(round_id)
        if updated is None:
            logger.info("clue limit reached", round_id=round_id, max_clues=round_.max_clues_allowed)
            raise ClueLimitReachedError
        logger.debug("clue revealed", round_id=round_id, clues_used=updated.clues_used)
        return ClueStatus(clues_used=updated.clues_used, clues_remaining=updated.clues_remaining)

    async def check_guess(self, round_id: str, token: str, guess: str) -> CheckResult:
        """Probe a name without ending the round.

        A miss is counted against the round; the miss after MAX_WRONG_GUESSES
        aborts it with no score and a broken streak.
        """
        now = time.time()
        round_ = await self._authorize(round_id, token, now)
        self._ensure_not_expired(round_, now)
        await self._ensure_not_scored(round_)

        profile = await self._load_profile(round_.player_id)
        if is_correct_guess(guess, profile.name):
            return CheckResult(
                match=True,
                wrong_guess_count=round_.wrong_guesses,
                guesses_remaining=max(0, MAX_WRONG_GUESSES - round_.wrong_guesses),
            )

        wrong = await self._rounds.record_wrong_guess(round_id)
        if wrong <= MAX_WRONG_GUESSES:
            return CheckResult(
                match=False,
                wrong_guess_count=wrong,
                guesses_remaining=MAX_WRONG_GUESSES - wrong,
            )

        result = await self._abort(round_, profile, wrong, now)
        return CheckResult(match=False, wrong_guess_count=wrong, guesses_remaining=0, aborted=True, result=result)

    async def submit_guess(self, round_id: str, token: str, guess: str) -> GuessResult:
        """Score the final guess of a round. Retries return the stored result."""
        now = time.time()
        round_ = await self._authorize(round_id, token, now)

        existing = await self._sessions.get_score(round_id)
        if existing is not None:
            logger.info("guess retried on scored round", round_id=round_id)
            return GuessResult.model_validate(existing.data)
        self._ensure_not_expired(round_, now)

        profile = await self._load_profile(round_.player_id)
        correct = is_correct_guess(guess, profile.name)
        session = await self._sessions.get_or_create_session(round_.session_id)
        difficulty = compute_difficulty(profile.stats)
        missed = round_.wrong_guesses + (0 if correct else 1)

        breakdown = calculate_score(
            difficulty,
            round_.clues_used,
            session.streak,
            elapsed_seconds=max(0.0, now - round_.started_at),
            missed_guesses=missed,
            grace_seconds=round_.grace_seconds,
        )

        streak = session.streak + 1 if correct else 0
        best_streak = max(session.best_streak, streak)
        earned = breakdown.final_score if correct else 0
        result = GuessResult(
            correct=correct,
            score=earned,
            breakdown=breakdown,
            streak=streak,
            best_streak=best_streak,
            player_name=profile.name,
            difficulty=difficulty,
            wrong_guess_count=missed,
        )
        update = SessionUpdate(
            streak=streak,
            best_streak=best_streak,
            earned_score=earned,
            earned_base=breakdown.adjusted_base if correct else 0,
            earned_time_score=breakdown.time_score if correct else 0,
        )
        stored = await self._record(round_, result, update, now, malice_penalty=breakdown.malice_penalty)
        logger.info(
            "guess scored",
            round_id=round_id,
            session_id=round_.session_id,
            correct=stored.correct,
            score=stored.score,
            streak=stored.streak,
        )
        return stored

    async def surrender(self, round_id: str, token: str) -> SurrenderResult:
        """Give up a round: zero score and a reset streak. Repeating it is a no-op success."""
        now = time.time()
        round_ = await self._authorize(round_id, token, now)

        existing = await self._sessions.get_score(round_id)
        if existing is not None:
            return SurrenderResult(player_name=GuessResult.model_validate(existing.data).player_name)
        self._ensure_not_expired(round_, now)

        profile = await self._load_profile(round_.player_id)
        session = await self._sessions.get_or_create_session(round_.session_id)
        result = GuessResult(
            correct=False,
            score=0,
            streak=0,
            best_streak=session.best_streak,
            player_name=profile.name,
            difficulty=compute_difficulty(profile.stats),
            wrong_guess_count=round_.wrong_guesses,
            surrendered=True,
        )
        stored = await self._record(round_, result, self._zero_update(session), now)
        logger.info("round surrendered", round_id=round_id, session_id=round_.session_id)
        return SurrenderResult(player_name=stored.player_name)

    # --- helpers ---

    def _issue(self, round_: Round, difficulty: Difficulty) -> IssuedRound:
        claims = RoundClaims(
            round_id=round_.round_id,
            player_id=round_.player_id,
            session_id=round_.session_id,
            exp=round_.expires_at * 1000,
        )
        return IssuedRound(
            round_id=round_.round_id,
            token=create_round_token(claims, self._secret),
            session_id=round_.session_id,
            player_id=round_.player_id,
            expires_at=round_.expires_at,
            clues_used=round_.clues_used,
            max_clues_allowed=round_.max_clues_allowed,
            difficulty=difficulty,
        )

    async def _pick_player(self, *, hard_mode: bool) -> tuple[PlayerProfile, Difficulty]:
        selection = None if hard_mode else NORMAL_MODE_SELECTION
        for _ in range(PLAYER_PICK_ATTEMPTS):
            player_id = await self._players.pick_random_player_id(selection)
            if player_id is None:
                break
            profile = await self._players.get_profile(player_id)
            if profile is None:
                continue
            difficulty = compute_difficulty(profile.stats)
            if hard_mode or difficulty.tier != DifficultyTier.ULTRA:
                return profile, difficulty
        raise NotFoundError("No player available")

    async def _load_profile(self, player_id: int) -> PlayerProfile:
        profile = await self._players.get_profile(player_id)
        if profile is None:
            raise NotFoundError("Player not found")
        return profile

    def _verify(self, token: str, now: float) -> RoundClaims:
        try:
            return verify_round_token(token, self._secret, now=int(now * 1000))
        except InvalidTokenSignatureError as exc:
            logger.warning("round token rejected", reason=exc.reason, token=token)
            raise TamperedRoundTokenError from exc
        except TokenExpiredError as exc:
            raise RoundTokenExpiredError from exc
        except InvalidTokenError as exc:
            logger.warning("round token rejected", reason=exc.reason, token=token)
            raise InvalidRoundTokenError from exc

    async def _authorize(self, round_id: str, token: str, now: float) -> Round:
        claims = self._verify(token, now)
        self._throttle_session(claims.session_id)
        if claims.round_id != round_id:
            logger.warning("token names a different round", round_id=round_id, token_round_id=claims.round_id)
            raise UnauthorizedError
        round_ = await self._rounds.get_round(round_id)
        if round_ is None:
            raise NotFoundError("Round not found")
        if round_.session_id != claims.session_id or round_.player_id != claims.player_id:
            logger.warning("round ownership mismatch", round_id=round_id, session_id=claims.session_id)
            raise UnauthorizedError
        return round_

    def _throttle_session(self, session_id: str) -> None:
        if self._rate_limiter is None:
            return
        key = f"session:{session_id}"
        if not self._rate_limiter.check(key):
            logger.info("session rate limited", session_id=session_id)
            raise RateLimitedError(retry_after=self._rate_limiter.retry_after(key))

    @staticmethod
    def _ensure_not_expired(round_: Round, now: float) -> None:
        if round_.is_expired(now):
            raise RoundExpiredError

    async def _ensure_not_scored(self, round_: Round) -> None:
        if await self._sessions.get_score(round_.round_id) is not None:
            raise RoundCompletedError

    @staticmethod
    def _zero_update(session: QuizSession) -> SessionUpdate:
        return SessionUpdate(streak=0, best_streak=session.best_streak)

    async def _abort(self, round_: Round, profile: PlayerProfile, wrong: int, now: float) -> GuessResult:
        session = await self._sessions.get_or_create_session(round_.session_id)
        difficulty = compute_difficulty(profile.stats)
        breakdown = calculate_score(
            difficulty,
            round_.clues_used,
            0,
            elapsed_seconds=max(0.0, now - round_.started_at),
            missed_guesses=wrong,
            grace_seconds=round_.grace_seconds,
        ).model_copy(update={"final_score": 0})
        result = GuessResult(
            correct=False,
            score=0,
            breakdown=breakdown,
            streak=0,
            best_streak=session.best_streak,
            player_name=profile.name,
            difficulty=difficulty,
            wrong_guess_count=wrong,
            aborted=True,
            abort_reason=ABORT_TOO_MANY_WRONG_GUESSES,
        )
        update = self._zero_update(session)
        stored = await self._record(round_, result, update, now, malice_penalty=breakdown.malice_penalty)
        logger.info("round aborted", round_id=round_.round_id, session_id=round_.session_id, wrong_guesses=wrong)
        return stored

    async def _record(
        self,
        round_: Round,
        result: GuessResult,
        update: SessionUpdate,
        now: float,
        *,
        malice_penalty: int = 0,
    ) -> GuessResult:
        """Persist the outcome; if another call scored the round first, return its result instead."""
        score = ScoreRecord(
            round_id=round_.round_id,
            session_id=round_.session_id,
            correct=result.correct,
            score=result.score,
            base_score=update.earned_base,
            time_score=update.earned_time_score,
            streak=result.streak,
            malice_penalty=malice_penalty,
            created_at=int(now),
            data=result.to_wire(),
        )
        stored = await self._sessions.record_score(score, update)
        return GuessResult.model_validate(stored.data)
