from __future__ import annotations


class ChallengeError(Exception):
    """Base for lifecycle failures. Each subclass maps onto one HTTP status."""
    code = "challenge_error"
    status_code = 400


class NotFound(ChallengeError):
    code = "not_found"
    status_code = 404


class ChallengeExpired(ChallengeError):
    code = "challenge_expired"
    status_code = 409


class NotYetExpired(ChallengeError):
    code = "not_yet_expired"
    status_code = 409


class AlreadyRegistered(ChallengeError):
    code = "already_registered"
    status_code = 409


class NotRegistered(ChallengeError):
    code = "not_registered"
    status_code = 404


class InsufficientPayment(ChallengeError):
    code = "insufficient_payment"
    status_code = 402


class AlreadySettled(ChallengeError):
    code = "already_settled"
    status_code = 409


class NoSuccessfulAthletes(ChallengeError):
    code = "no_successful_athletes"
    status_code = 409


class Forbidden(ChallengeError):
    code = "forbidden"
    status_code = 403


class TransferFailed(ChallengeError):
    code = "transfer_failed"
    status_code = 502

    def __init__(self, message: str, *, athlete_id: int | None = None, paid: list[int] | None = None):
        super().__init__(message)
        self.athlete_id = athlete_id
        self.paid = paid or []
