"""Table definitions for the PostgreSQL stores."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS identities (
    id UUID PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    first_name TEXT,
    last_name TEXT,
    email_domain TEXT NOT NULL,
    is_corporate_email BOOLEAN NOT NULL DEFAULT TRUE,
    password_hash TEXT,
    oauth_provider TEXT,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    email_verified BOOLEAN NOT NULL DEFAULT FALSE,
    failed_login_attempts INTEGER NOT NULL DEFAULT 0,
    lock_until TIMESTAMPTZ,
    last_login TIMESTAMPTZ,
    refresh_token_version INTEGER NOT NULL DEFAULT 0,
    email_verification_token_hash TEXT,
    email_verification_expires_at TIMESTAMPTZ,
    password_reset_token_hash TEXT,
    password_reset_expires_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT identities_credential_present
        CHECK (password_hash IS NOT NULL OR oauth_provider IS NOT NULL)
);

CREATE INDEX IF NOT EXISTS identities_email_domain_idx ON identities (email_domain);
CREATE INDEX IF NOT EXISTS identities_verification_token_idx
    ON identities (email_verification_token_hash);
CREATE INDEX IF NOT EXISTS identities_reset_token_idx ON identities (password_reset_token_hash);

CREATE TABLE IF NOT EXISTS workspaces (
    id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    domain TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'personal',
    visibility TEXT NOT NULL DEFAULT 'private',
    allow_invites BOOLEAN NOT NULL DEFAULT TRUE,
    max_members INTEGER NOT NULL DEFAULT 50,
    created_by UUID NOT NULL REFERENCES identities (id),
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS workspace_members (
    id UUID PRIMARY KEY,
    workspace_id UUID NOT NULL REFERENCES workspaces (id),
    identity_id UUID NOT NULL REFERENCES identities (id),
    role TEXT NOT NULL,
    permissions JSONB NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    invited_by UUID REFERENCES identities (id),
    invite_token_hash TEXT,
    invite_expires_at TIMESTAMPTZ,
    joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT workspace_members_pair_unique UNIQUE (workspace_id, identity_id)
);

CREATE INDEX IF NOT EXISTS workspace_members_identity_idx
    ON workspace_members (identity_id, is_active);
"""
