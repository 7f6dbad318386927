"""Unit tests for EXP and Leveling System (grow/gamification/xp_system.py)"""
import pytest

from grow.gamification.xp_system import apply_exp, apply_penalty, get_level_info
from grow.models.player import PlayerProfile


# ============================================================================
# Level-up Loop Tests
# ============================================================================

def test_apply_exp_below_threshold():
    profile = PlayerProfile()
    change = apply_exp(profile, 150)

    assert profile.level == 1
    assert profile.exp_current == 150
    assert change.leveled_up is False
    assert profile.skill_points == 0


def test_apply_exp_exact_threshold_levels_once():
    """EXP equal to exp_to_next gives exactly one level and leaves 0"""
    profile = PlayerProfile()
    change = apply_exp(profile, 200)

    assert change.levels_gained == 1
    assert profile.level == 2
    assert profile.exp_current == 0
    assert profile.exp_to_next == 250
    assert profile.skill_points == 1


def test_apply_exp_multiple_level_ups():
    """1000 EXP from level 1 crosses 200, 250 and 313"""
    profile = PlayerProfile()
    change = apply_exp(profile, 1000)

    assert change.old_level == 1
    assert change.new_level == 4
    assert change.levels_gained == 3
    assert change.skill_points_granted == 3
    assert profile.skill_points == 3
    assert profile.exp_current == 237
    assert profile.exp_to_next == 391
    assert 0 <= profile.exp_current < profile.exp_to_next


def test_apply_exp_zero():
    profile = PlayerProfile()
    change = apply_exp(profile, 0)
    assert change.levels_gained == 0
    assert profile.exp_current == 0


def test_apply_exp_rejects_negative():
    with pytest.raises(ValueError):
        apply_exp(PlayerProfile(), -5)


# ============================================================================
# Penalty Tests
# ============================================================================

def test_apply_penalty_debits():
    profile = PlayerProfile(exp_current=100)
    debited = apply_penalty(profile, 15)

    assert debited == 15
    assert profile.exp_current == 85


def test_apply_penalty_floors_at_zero():
    """Penalties never go below 0 and never remove levels"""
    profile = PlayerProfile(level=3, exp_current=10, exp_to_next=313)
    debited = apply_penalty(profile, 15)

    assert debited == 10
    assert profile.exp_current == 0
    assert profile.level == 3


# ============================================================================
# Level Info Tests
# ============================================================================

def test_get_level_info():
    profile = PlayerProfile(level=3, exp_current=100, exp_to_next=313)
    info = get_level_info(profile)

    assert info["current_level"] == 3
    assert info["xp_in_current_level"] == 100
    assert info["xp_to_next_level"] == 213
    assert info["total_xp"] == 550
