import pytest

from quiz.logic.guess import grace_seconds_for, is_correct_guess, normalize_name


class TestNormalizeName:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Kylian Mbappé", "kylian mbappe"),
            ("  N'Golo   Kanté ", "ngolo kante"),
            ("N’Golo Kanté", "ngolo kante"),
            ("ÉDER MILITÃO", "eder militao"),
            ("Zlatan\tIbrahimović", "zlatan ibrahimovic"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_name(raw) == expected


class TestIsCorrectGuess:
    def test_accent_and_case_insensitive(self):
        assert is_correct_guess("kylian MBAPPE", "Kylian Mbappé")

    def test_apostrophe_insensitive(self):
        assert is_correct_guess("Ngolo Kante", "N'Golo Kanté")

    def test_partial_name_is_wrong(self):
        assert not is_correct_guess("Mbappe", "Kylian Mbappé")

    def test_no_fuzzy_matching(self):
        assert not is_correct_guess("Kylian Mbape", "Kylian Mbappé")

    @pytest.mark.parametrize("guess", ["", "   ", "'"])
    def test_blank_guess_never_matches(self, guess):
        assert not is_correct_guess(guess, "")


class TestGraceSeconds:
    @pytest.mark.parametrize(("transfers", "expected"), [(0, 0), (1, 5), (5, 25), (6, 30), (40, 30), (-2, 0)])
    def test_five_seconds_per_transfer_capped(self, transfers, expected):
        assert grace_seconds_for(transfers) == expected
