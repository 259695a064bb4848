import unittest
from datetime import datetime, timezone

from quotation_engine.domain.clock import iso_timestamp, parse_datetime, token_expires_at, token_is_expired


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TokenExpiryTest(unittest.TestCase):
    def test_token_lives_until_end_of_deadline_day(self) -> None:
        quotation = {"deadline": "2026-10-25", "resolved_at": None}

        self.assertFalse(token_is_expired(quotation, now=_utc(2026, 10, 25, 23, 59)))
        self.assertTrue(token_is_expired(quotation, now=_utc(2026, 10, 26, 0, 0)))

    def test_grace_days_extend_the_deadline(self) -> None:
        quotation = {"deadline": "2026-10-25"}

        self.assertFalse(token_is_expired(quotation, now=_utc(2026, 10, 27, 12, 0), grace_days=2))
        self.assertTrue(token_is_expired(quotation, now=_utc(2026, 10, 28, 0, 0), grace_days=2))

    def test_without_deadline_token_expires_after_resolution_ttl(self) -> None:
        open_quotation = {"deadline": None, "resolved_at": None}
        resolved = {"deadline": None, "resolved_at": "2026-10-19 10:00:00"}

        self.assertIsNone(token_expires_at(open_quotation))
        self.assertFalse(token_is_expired(open_quotation, now=_utc(2030, 1, 1)))
        self.assertFalse(token_is_expired(resolved, now=_utc(2026, 10, 26, 9, 59), resolved_ttl_days=7))
        self.assertTrue(token_is_expired(resolved, now=_utc(2026, 10, 26, 10, 0), resolved_ttl_days=7))

    def test_earliest_limit_wins(self) -> None:
        quotation = {"deadline": "2026-12-31", "resolved_at": "2026-10-19T10:00:00Z"}

        self.assertEqual(token_expires_at(quotation, resolved_ttl_days=1), _utc(2026, 10, 20, 10, 0))

    def test_timestamps_are_normalized_to_utc(self) -> None:
        self.assertEqual(iso_timestamp("2026-10-19 10:00:00"), "2026-10-19T10:00:00Z")
        self.assertEqual(parse_datetime("2026-10-19T07:00:00-03:00"), _utc(2026, 10, 19, 10, 0))
        self.assertIsNone(parse_datetime("ontem"))


if __name__ == "__main__":
    unittest.main()
