"""
HGW Constants
Values follow the host game's hacking formulas and the tuning used by the
batcher scripts that drive it.
"""

# ============================================================
# Well-known servers
# ============================================================
HOME = "home"
NOODLES = "n00dles"
JOES = "joesguns"
PHANTASY = "phantasy"

PSERV_PREFIX = "pserv"

# Purchased servers should not hack any of these targets.
PSERV_EXCLUDE = (HOME, JOES, NOODLES)

# ============================================================
# HGW scripts and their RAM cost (GB per thread)
# ============================================================
SCRIPT_GROW = "/hgw/grow.js"
SCRIPT_HACK = "/hgw/hack.js"
SCRIPT_WEAKEN = "/hgw/weaken.js"

SCRIPT_RAM = {
    SCRIPT_GROW: 1.75,
    SCRIPT_HACK: 1.70,
    SCRIPT_WEAKEN: 1.75,
}

# ============================================================
# Waiting periods (milliseconds)
# ============================================================
BUFFER_TIME = 100
WAIT_SECOND = 1_000

# ============================================================
# Fraction of money to steal
# ============================================================
PSERV_DEFAULT_MONEY_FRACTION = 0.9

HACK_FRACTION = {
    JOES: 0.7,
    NOODLES: 0.5,
    PHANTASY: 0.5,
}

# ============================================================
# RAM reserved on the home server (GB)
# ============================================================
HOME_RESERVE_DEFAULT = 64

# ============================================================
# Port openers needed per target tier
# ============================================================
# BruteSSH.exe + FTPCrack.exe
PORT_OPENERS_TIER_ONE = 2
# ... + relaySMTP.exe, HTTPWorm.exe, SQLInject.exe
PORT_OPENERS_ALL = 5

# ============================================================
# Hacking formulas
# ============================================================
HACK_TIME_MULTIPLIER = 5
GROW_TIME_MULTIPLIER = 3.2
WEAKEN_TIME_MULTIPLIER = 4
HACK_BASE_DIFFICULTY = 500
HACK_BASE_SKILL = 50
HACK_DIFFICULTY_FACTOR = 2.5
HACK_BALANCE_FACTOR = 240

SERVER_BASE_GROWTH_RATE = 1.03
SERVER_MAX_GROWTH_RATE = 1.0035

# Security change per thread
WEAKEN_SECURITY_PER_THREAD = 0.05
GROW_SECURITY_PER_THREAD = 0.004
HACK_SECURITY_PER_THREAD = 0.002

MAX_SECURITY = 100

# Hacking experience per thread
EXP_BASE = 3
EXP_DIFFICULTY_FACTOR = 0.3
