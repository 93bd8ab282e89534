from settings import settings
import psycopg

DDL = '''
CREATE TABLE IF NOT EXISTS events (
    id BIGSERIAL PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    description TEXT NOT NULL,
    start_utc TIMESTAMP WITH TIME ZONE NOT NULL,
    end_utc TIMESTAMP WITH TIME ZONE NOT NULL CHECK (end_utc >= start_utc),
    is_all_day BOOLEAN NOT NULL DEFAULT FALSE,
    location VARCHAR(255) NOT NULL,
    location_address TEXT,
    location_latitude VARCHAR(20),
    location_longitude VARCHAR(20),
    organizer_name VARCHAR(255) NOT NULL,
    organizer_email VARCHAR(320) NOT NULL,
    organizer_phone VARCHAR(20),
    organizer_url VARCHAR(2048),
    event_url VARCHAR(2048),
    image_url VARCHAR(2048),
    event_type TEXT NOT NULL DEFAULT 'other'
        CHECK (event_type IN ('fundraiser', 'rally', 'meeting', 'training', 'social', 'other')),
    visibility TEXT NOT NULL DEFAULT 'public'
        CHECK (visibility IN ('public', 'private', 'members')),
    is_recurring BOOLEAN NOT NULL DEFAULT FALSE,
    recurring_pattern VARCHAR(32),
    recurring_months TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'rejected')),
    submitted_by BIGINT,
    submitted_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    approved_by BIGINT,
    approved_at TIMESTAMP WITH TIME ZONE,
    rejection_reason TEXT,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_events_status_start ON events (status, start_utc);
CREATE INDEX IF NOT EXISTS idx_events_submitted_by ON events (submitted_by, submitted_at DESC);

CREATE TABLE IF NOT EXISTS organizer_requests (
    id BIGSERIAL PRIMARY KEY,
    email VARCHAR(320) NOT NULL,
    name VARCHAR(255) NOT NULL,
    organization_name VARCHAR(255) NOT NULL,
    organization_type TEXT NOT NULL DEFAULT 'other'
        CHECK (organization_type IN ('committee', 'club', 'group', 'campaign', 'party', 'other')),
    phone VARCHAR(20),
    message TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'rejected')),
    approved_by BIGINT,
    approved_at TIMESTAMP WITH TIME ZONE,
    rejection_reason TEXT,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);
'''

print('Connecting to', settings.db_url)
with psycopg.connect(settings.db_url, connect_timeout=5) as conn:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
print('DDL applied')
