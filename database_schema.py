"""
SQL schema for the shared rate-limit store.
Run these queries in your Supabase SQL editor when RATE_LIMIT_BACKEND=supabase.
"""

CREATE_RATE_LIMIT_TABLE = """
-- Fixed-window counters keyed by "rl:<client ip>"
CREATE TABLE IF NOT EXISTS rate_limit_state (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- Create index on expires_at for cleanup of stale windows
CREATE INDEX IF NOT EXISTS idx_rate_limit_state_expires_at ON rate_limit_state(expires_at);

-- Enable Row Level Security
ALTER TABLE rate_limit_state ENABLE ROW LEVEL SECURITY;

-- Policy: Service role can do everything (for the gateway)
CREATE POLICY rate_limit_state_service_role_all ON rate_limit_state
    FOR ALL
    USING (auth.role() = 'service_role');
"""

CREATE_UPDATED_AT_TRIGGER = """
-- Function to update updated_at timestamp
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_rate_limit_state_updated_at ON rate_limit_state;
CREATE TRIGGER update_rate_limit_state_updated_at
    BEFORE UPDATE ON rate_limit_state
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""

PURGE_EXPIRED_ROWS = """
-- Optional: purge expired windows (schedule with pg_cron if desired)
DELETE FROM rate_limit_state WHERE expires_at < NOW();
"""

# Combined setup script
FULL_SCHEMA_SETUP = f"""
-- =====================================================
-- Lead Proxy Rate Limit Schema Setup
-- =====================================================
-- Run this in your Supabase SQL Editor
-- =====================================================

{CREATE_RATE_LIMIT_TABLE}

{CREATE_UPDATED_AT_TRIGGER}

{PURGE_EXPIRED_ROWS}

-- =====================================================
-- Setup Complete!
-- =====================================================
"""

if __name__ == "__main__":
    print(FULL_SCHEMA_SETUP)
