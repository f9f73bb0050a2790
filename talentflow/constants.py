"""
talentflow/constants.py

Central repository for cross-cutting, operationally-tunable constants.

Rules for what belongs here:
  - Pure Python only, no Django model imports (prevents circular imports).
  - Referenced by more than one module, or genuinely tunable at the ops level.

What stays elsewhere:
  - Stage enumeration and ordering  : applications/stages.py
  - Fallback message bodies         : messaging/services.py (single consumer)
"""

# ── Cache ──────────────────────────────────────────────────────────────────────

# Key for the per-stage pipeline board counts. Invalidated on every stage
# change (applications/services.py) and on application creation.
PIPELINE_COUNTS_CACHE_KEY = "pipeline_counts"

# Seconds the board counts are cached between requests.
PIPELINE_COUNTS_CACHE_TTL = 60

# ── Effect outbox ──────────────────────────────────────────────────────────────

# Delivery attempts (initial + retries) before a PendingEffect is left failed
# for manual inspection.
MAX_EFFECT_ATTEMPTS = 5

# Seconds a never-attempted (pending) effect is left to the request that
# created it before the retry job may deliver it.
EFFECT_RETRY_GRACE_SECONDS = 120

# ── Scoring ────────────────────────────────────────────────────────────────────

# Applications scored per scheduler run.
SCORING_BATCH_SIZE = 20

# Maximum PDF pages extracted from a resume (pdfplumber).
RESUME_MAX_PAGES = 5

# Characters of resume text sent to Claude for scoring.
RESUME_MAX_CHARS = 12000

# ── Uploads ────────────────────────────────────────────────────────────────────

MAX_RESUME_SIZE_MB = 10

# ── Interviews ─────────────────────────────────────────────────────────────────

# How far ahead the reminder job looks for scheduled interviews.
INTERVIEW_REMINDER_HOURS_AHEAD = 24
