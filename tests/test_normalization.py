"""Tests for name and national id normalization."""

import math

import pytest

from block_scheduler.normalization import (
    clean_text,
    is_blank,
    normalize_key,
    normalize_rut,
    normalize_teacher_name,
)


class TestNormalizeTeacherName:
    """Tests for normalize_teacher_name function."""

    def test_prof_without_period(self):
        """Test 'prof' prefix is removed."""
        assert normalize_teacher_name("prof Ana Rojas") == "ana rojas"

    def test_prof_with_period(self):
        """Test 'Prof.' prefix is removed."""
        assert normalize_teacher_name("Prof. Ana Rojas") == "ana rojas"

    def test_profesora_prefix(self):
        """Test 'Profesora' prefix is removed."""
        assert normalize_teacher_name("Profesora Ana Rojas") == "ana rojas"

    def test_dr_without_space(self):
        """Test 'Dr.' prefix glued to the name is removed."""
        assert normalize_teacher_name("Dr.Luis Soto") == "luis soto"

    @pytest.mark.parametrize("prefix", ["Dra.", "Mg.", "Ing.", "Sr.", "Sra.", "Srta."])
    def test_other_prefixes(self, prefix):
        assert normalize_teacher_name(f"{prefix} Marta Vidal") == "marta vidal"

    def test_name_starting_like_prefix_kept(self):
        """Test a surname beginning with 'Prof' is not cut."""
        assert normalize_teacher_name("Profeta Diaz") == "profeta diaz"

    def test_whitespace_collapsed(self):
        assert normalize_teacher_name("  Ana   Rojas ") == "ana rojas"

    def test_accents_preserved(self):
        assert normalize_teacher_name("Prof. José Pérez") == "josé pérez"

    def test_blank(self):
        assert normalize_teacher_name("") == ""
        assert normalize_teacher_name(None) == ""


class TestBlankValues:
    """Tests for is_blank and clean_text."""

    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank(math.nan)
        assert is_blank("   ")

    def test_non_blank_values(self):
        assert not is_blank("x")
        assert not is_blank(0)
        assert not is_blank([])

    def test_clean_text(self):
        assert clean_text("  Lab \n 101 ") == "Lab 101"
        assert clean_text(math.nan) == ""
        assert clean_text(42) == "42"

    def test_normalize_key(self):
        assert normalize_key(" Lab  101 ") == normalize_key("LAB 101")


class TestNormalizeRut:
    """Tests for normalize_rut function."""

    def test_dots_and_dash_removed(self):
        assert normalize_rut("12.345.678-5") == "123456785"

    def test_check_character_upper_case(self):
        assert normalize_rut("9.876.543-k") == "9876543K"

    def test_no_digits(self):
        assert normalize_rut("Ana Rojas") == ""
        assert normalize_rut(None) == ""
