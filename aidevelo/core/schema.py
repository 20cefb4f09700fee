# aidevelo/core/schema.py
"""
Safe, idempotent DDL for the storefront tables. Executed on every startup
by PostgresStorage.ensure_schema(); it only creates what is missing.
"""

DDL = """
CREATE SCHEMA IF NOT EXISTS aidevelo;

CREATE TABLE IF NOT EXISTS aidevelo.agent_configs (
  id                  TEXT PRIMARY KEY,
  user_id             TEXT NOT NULL,
  module_id           TEXT NOT NULL,
  is_active           BOOLEAN NOT NULL DEFAULT TRUE,
  configuration       JSONB NOT NULL DEFAULT '{}'::jsonb,
  knowledge_base      JSONB,
  custom_instructions TEXT,
  created_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
  updated_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS aidevelo.chat_sessions (
  id               TEXT PRIMARY KEY,
  agent_config_id  TEXT NOT NULL REFERENCES aidevelo.agent_configs(id),
  visitor_id       TEXT,
  visitor_email    TEXT,
  visitor_name     TEXT,
  is_lead_captured BOOLEAN NOT NULL DEFAULT FALSE,
  started_at       TIMESTAMPTZ NOT NULL DEFAULT now(),
  ended_at         TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS aidevelo.chat_messages (
  id         TEXT PRIMARY KEY,
  seq        BIGSERIAL,
  session_id TEXT NOT NULL REFERENCES aidevelo.chat_sessions(id) ON DELETE CASCADE,
  sender     TEXT NOT NULL CHECK (sender IN ('user', 'agent')),
  message    TEXT NOT NULL,
  timestamp  TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_chat_messages_session
  ON aidevelo.chat_messages(session_id, timestamp, seq);

CREATE TABLE IF NOT EXISTS aidevelo.leads (
  id         TEXT PRIMARY KEY,
  name       TEXT NOT NULL,
  company    TEXT NOT NULL,
  industry   TEXT NOT NULL,
  phone      TEXT,
  email      TEXT NOT NULL,
  message    TEXT,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS aidevelo.contacts (
  id                 TEXT PRIMARY KEY,
  first_name         TEXT NOT NULL,
  last_name          TEXT NOT NULL,
  email              TEXT NOT NULL,
  phone              TEXT,
  company            TEXT NOT NULL,
  website            TEXT,
  employee_count     TEXT NOT NULL,
  industry           TEXT NOT NULL,
  interested_modules TEXT[] NOT NULL,
  current_challenges TEXT NOT NULL,
  budget             TEXT NOT NULL,
  timeline           TEXT NOT NULL,
  additional_info    TEXT,
  accept_privacy     BOOLEAN NOT NULL DEFAULT FALSE,
  accept_newsletter  BOOLEAN NOT NULL DEFAULT FALSE,
  lead_score         TEXT,
  status             TEXT NOT NULL DEFAULT 'new',
  created_at         TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""
