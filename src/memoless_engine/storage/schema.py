"""
registrations table DDL (idempotent), one variant per engine.
"""

# ── SQL ────────────────────────────────────────────────────────────

_CONFIRMED_CHECK = """
    CHECK (
        status <> 'confirmed'
        OR (reference_id IS NOT NULL AND reference_id <> ''
            AND height IS NOT NULL AND height <> ''
            AND registered_by IS NOT NULL AND registered_by <> '')
    )"""

CREATE_REGISTRATIONS_POSTGRES = f"""
CREATE TABLE IF NOT EXISTS registrations (
    id TEXT PRIMARY KEY,
    tx_hash TEXT UNIQUE,
    asset TEXT NOT NULL,
    memo TEXT NOT NULL,
    submitted_memo TEXT,
    reference_id TEXT,
    height TEXT,
    registration_hash TEXT,
    registered_by TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'confirmed', 'failed')),
    error TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    confirmed_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),{_CONFIRMED_CHECK}
);
"""

CREATE_REGISTRATIONS_SQLITE = f"""
CREATE TABLE IF NOT EXISTS registrations (
    id TEXT PRIMARY KEY,
    tx_hash TEXT UNIQUE,
    asset TEXT NOT NULL,
    memo TEXT NOT NULL,
    submitted_memo TEXT,
    reference_id TEXT,
    height TEXT,
    registration_hash TEXT,
    registered_by TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'confirmed', 'failed')),
    error TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    confirmed_at TEXT,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,{_CONFIRMED_CHECK}
);
"""

CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_registrations_tx_hash ON registrations(tx_hash)",
    "CREATE INDEX IF NOT EXISTS idx_registrations_reference ON registrations(reference_id)",
    "CREATE INDEX IF NOT EXISTS idx_registrations_status ON registrations(status)",
)
