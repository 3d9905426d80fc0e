#!/usr/bin/env python3
"""Supabase database setup script for ReviewHub.

This script outputs the SQL needed to create all required tables and
functions in Supabase. Copy the SQL output and run it in the Supabase SQL
Editor.

Usage:
    # Print all SQL to console
    python scripts/setup_supabase.py

    # Print SQL and save to file
    python scripts/setup_supabase.py --output setup.sql

    # Verify tables exist
    python scripts/setup_supabase.py --verify

Tables Created:
    - business_profiles: One scraped place, page or listing per identifier
    - reviews: Canonical reviews, owned by a business profile
    - review_metadata: Derived data and workflow flags, 1:1 with reviews
    - market_identifiers: (owner, platform) -> external identifier bindings
    - periodical_metrics: Aggregate snapshots per (profile, period key)
    - rating_distributions: One denormalized breakdown per profile

Functions Created:
    - replace_market_identifier: atomic identifier upsert + stale profile cascade
    - remove_market_identifier: unbind and delete the bound profile
    - insert_reviews_with_metadata: reviews plus metadata in one transaction
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime

# =============================================================================
# SQL Schema Definitions
# =============================================================================

SCHEMA_SQL = """
-- =============================================================================
-- ReviewHub Database Schema for Supabase
-- =============================================================================
-- Generated: {generated_at}
--
-- Instructions:
-- 1. Open your Supabase project dashboard
-- 2. Go to SQL Editor
-- 3. Paste this entire script
-- 4. Click "Run" to execute
-- =============================================================================

CREATE EXTENSION IF NOT EXISTS "uuid-ossp";

-- =============================================================================
-- Table: business_profiles
-- =============================================================================
-- Root of ownership. Deleting a profile removes its reviews, metadata,
-- snapshots and distribution through ON DELETE CASCADE.
-- =============================================================================

CREATE TABLE IF NOT EXISTS business_profiles (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    owner_id TEXT NOT NULL,
    platform TEXT NOT NULL,
    external_identifier TEXT NOT NULL,
    display_name TEXT,
    last_review_date TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT business_profiles_platform_valid CHECK (
        platform IN ('google_maps', 'facebook', 'tripadvisor', 'booking')
    ),
    CONSTRAINT business_profiles_identifier_not_empty CHECK (external_identifier <> ''),
    CONSTRAINT business_profiles_unique UNIQUE (owner_id, platform, external_identifier)
);

CREATE INDEX IF NOT EXISTS idx_business_profiles_owner ON business_profiles(owner_id, platform);

COMMENT ON TABLE business_profiles IS 'Scraped places, pages and listings';
COMMENT ON COLUMN business_profiles.external_identifier IS 'Place id, page URL or listing URL';


-- =============================================================================
-- Table: reviews
-- =============================================================================
-- Canonical reviews. rating is on the 1-5 scale; native_rating keeps the
-- platform value (1-10 for booking). Only response_text / response_date
-- change after insert.
-- =============================================================================

CREATE TABLE IF NOT EXISTS reviews (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    business_profile_id UUID NOT NULL REFERENCES business_profiles(id) ON DELETE CASCADE,
    platform TEXT NOT NULL,
    external_review_id TEXT NOT NULL,

    rating DOUBLE PRECISION,
    native_rating DOUBLE PRECISION,
    published_at TIMESTAMPTZ NOT NULL,

    title TEXT,
    text TEXT,
    language TEXT,

    reviewer_name TEXT,
    reviewer_id TEXT,
    reviewer_avatar_url TEXT,
    reviewer_country TEXT,

    media_urls JSONB DEFAULT '[]'::jsonb,
    photo_count INTEGER DEFAULT 0,

    response_text TEXT,
    response_date TIMESTAMPTZ,

    sub_ratings JSONB DEFAULT '{{}}'::jsonb,
    trip_type TEXT,
    is_recommended BOOLEAN,

    likes_count INTEGER DEFAULT 0,
    comments_count INTEGER DEFAULT 0,
    helpful_votes INTEGER DEFAULT 0,
    tags JSONB DEFAULT '[]'::jsonb,

    length_of_stay INTEGER,
    room_type TEXT,

    source_url TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT reviews_rating_range CHECK (rating IS NULL OR (rating >= 1 AND rating <= 5)),
    CONSTRAINT reviews_external_unique UNIQUE (business_profile_id, external_review_id)
);

CREATE INDEX IF NOT EXISTS idx_reviews_profile_published ON reviews(business_profile_id, published_at DESC);

COMMENT ON TABLE reviews IS 'Platform-neutral reviews';


-- =============================================================================
-- Table: review_metadata
-- =============================================================================

CREATE TABLE IF NOT EXISTS review_metadata (
    review_id UUID PRIMARY KEY REFERENCES reviews(id) ON DELETE CASCADE,
    sentiment DOUBLE PRECISION,
    keywords JSONB DEFAULT '[]'::jsonb,
    topics JSONB DEFAULT '[]'::jsonb,
    is_urgent BOOLEAN DEFAULT false,
    is_read BOOLEAN DEFAULT false,
    is_important BOOLEAN DEFAULT false,
    labels JSONB DEFAULT '[]'::jsonb,
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT review_metadata_sentiment_range CHECK (
        sentiment IS NULL OR (sentiment >= -1 AND sentiment <= 1)
    )
);

COMMENT ON TABLE review_metadata IS 'Derived data and workflow state, 1:1 with reviews';


-- =============================================================================
-- Table: market_identifiers
-- =============================================================================

CREATE TABLE IF NOT EXISTS market_identifiers (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    owner_id TEXT NOT NULL,
    team_id TEXT,
    location_id TEXT,
    platform TEXT NOT NULL,
    identifier TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT market_identifiers_identifier_not_empty CHECK (identifier <> ''),
    CONSTRAINT market_identifiers_unique UNIQUE (owner_id, platform)
);

COMMENT ON TABLE market_identifiers IS 'External identifier per owner and platform';


-- =============================================================================
-- Table: periodical_metrics
-- =============================================================================
-- data holds the full PeriodicalMetric document; snapshots are replaced
-- wholesale on recomputation.
-- =============================================================================

CREATE TABLE IF NOT EXISTS periodical_metrics (
    business_profile_id UUID NOT NULL REFERENCES business_profiles(id) ON DELETE CASCADE,
    period_key INTEGER NOT NULL,
    data JSONB NOT NULL,
    computed_at TIMESTAMPTZ NOT NULL,

    PRIMARY KEY (business_profile_id, period_key),
    CONSTRAINT periodical_metrics_period_valid CHECK (period_key IN (0, 1, 3, 7, 30, 180, 365))
);


-- =============================================================================
-- Table: rating_distributions
-- =============================================================================

CREATE TABLE IF NOT EXISTS rating_distributions (
    business_profile_id UUID PRIMARY KEY REFERENCES business_profiles(id) ON DELETE CASCADE,
    data JSONB NOT NULL,
    computed_at TIMESTAMPTZ NOT NULL
);


-- =============================================================================
-- Function: replace_market_identifier
-- =============================================================================
-- Upserts the binding for (owner, platform). When the identifier value
-- changes, the profile bound to the old value is deleted (cascading to
-- everything it owns) and a profile for the new value is created, all in
-- one transaction.
-- =============================================================================

CREATE OR REPLACE FUNCTION replace_market_identifier(
    p_owner_id TEXT,
    p_platform TEXT,
    p_identifier TEXT,
    p_team_id TEXT DEFAULT NULL,
    p_location_id TEXT DEFAULT NULL
) RETURNS JSON AS $$
DECLARE
    v_previous TEXT;
    v_stale_id UUID;
    v_identifier market_identifiers%ROWTYPE;
    v_profile business_profiles%ROWTYPE;
BEGIN
    SELECT identifier INTO v_previous
    FROM market_identifiers
    WHERE owner_id = p_owner_id AND platform = p_platform
    FOR UPDATE;

    INSERT INTO market_identifiers (owner_id, platform, identifier, team_id, location_id)
    VALUES (p_owner_id, p_platform, p_identifier, p_team_id, p_location_id)
    ON CONFLICT (owner_id, platform) DO UPDATE SET
        identifier = EXCLUDED.identifier,
        team_id = COALESCE(EXCLUDED.team_id, market_identifiers.team_id),
        location_id = COALESCE(EXCLUDED.location_id, market_identifiers.location_id),
        updated_at = NOW()
    RETURNING * INTO v_identifier;

    IF v_previous IS NOT NULL AND v_previous <> p_identifier THEN
        DELETE FROM business_profiles
        WHERE owner_id = p_owner_id
          AND platform = p_platform
          AND external_identifier = v_previous
        RETURNING id INTO v_stale_id;
    END IF;

    INSERT INTO business_profiles (owner_id, platform, external_identifier)
    VALUES (p_owner_id, p_platform, p_identifier)
    ON CONFLICT (owner_id, platform, external_identifier) DO NOTHING;

    SELECT * INTO v_profile
    FROM business_profiles
    WHERE owner_id = p_owner_id
      AND platform = p_platform
      AND external_identifier = p_identifier;

    RETURN json_build_object(
        'identifier', row_to_json(v_identifier),
        'previous_identifier', v_previous,
        'profile', row_to_json(v_profile),
        'stale_profile_id', v_stale_id
    );
END;
$$ LANGUAGE plpgsql;


-- =============================================================================
-- Function: remove_market_identifier
-- =============================================================================

CREATE OR REPLACE FUNCTION remove_market_identifier(
    p_owner_id TEXT,
    p_platform TEXT
) RETURNS JSON AS $$
DECLARE
    v_identifier market_identifiers%ROWTYPE;
    v_deleted_id UUID;
BEGIN
    DELETE FROM market_identifiers
    WHERE owner_id = p_owner_id AND platform = p_platform
    RETURNING * INTO v_identifier;

    IF NOT FOUND THEN
        RETURN NULL;
    END IF;

    DELETE FROM business_profiles
    WHERE owner_id = p_owner_id
      AND platform = p_platform
      AND external_identifier = v_identifier.identifier
    RETURNING id INTO v_deleted_id;

    RETURN json_build_object(
        'identifier', row_to_json(v_identifier),
        'deleted_profile_id', v_deleted_id
    );
END;
$$ LANGUAGE plpgsql;

-- =============================================================================
-- Function: insert_reviews_with_metadata
-- =============================================================================
-- Inserts a batch of reviews and their 1:1 metadata rows in one transaction.
-- Reviews already stored for (business_profile_id, external_review_id) are
-- skipped together with their metadata, so replaying a call is harmless.
-- Returns the number of reviews inserted.
-- =============================================================================

CREATE OR REPLACE FUNCTION insert_reviews_with_metadata(
    p_reviews JSON,
    p_metadata JSON
) RETURNS INTEGER AS $$
DECLARE
    v_inserted INTEGER;
BEGIN
    WITH inserted AS (
        INSERT INTO reviews
        SELECT * FROM json_populate_recordset(NULL::reviews, p_reviews)
        ON CONFLICT (business_profile_id, external_review_id) DO NOTHING
        RETURNING id
    ), paired AS (
        INSERT INTO review_metadata
        SELECT m.*
        FROM json_populate_recordset(NULL::review_metadata, p_metadata) AS m
        JOIN inserted ON inserted.id = m.review_id
        ON CONFLICT (review_id) DO NOTHING
        RETURNING review_id
    )
    SELECT COUNT(*) INTO v_inserted FROM inserted;

    RETURN v_inserted;
END;
$$ LANGUAGE plpgsql;
"""

DROP_TABLES_SQL = """
-- =============================================================================
-- DROP ALL TABLES (USE WITH EXTREME CAUTION!)
-- =============================================================================
-- This will delete ALL data. Only use for complete reset during development.
-- =============================================================================

DROP FUNCTION IF EXISTS insert_reviews_with_metadata(JSON, JSON) CASCADE;
DROP FUNCTION IF EXISTS remove_market_identifier(TEXT, TEXT) CASCADE;
DROP FUNCTION IF EXISTS replace_market_identifier(TEXT, TEXT, TEXT, TEXT, TEXT) CASCADE;

DROP TABLE IF EXISTS rating_distributions CASCADE;
DROP TABLE IF EXISTS periodical_metrics CASCADE;
DROP TABLE IF EXISTS review_metadata CASCADE;
DROP TABLE IF EXISTS reviews CASCADE;
DROP TABLE IF EXISTS market_identifiers CASCADE;
DROP TABLE IF EXISTS business_profiles CASCADE;
"""

# Table -> a column every row has, used for the existence probe
REQUIRED_TABLES = {
    "business_profiles": "id",
    "reviews": "id",
    "review_metadata": "review_id",
    "market_identifiers": "id",
    "periodical_metrics": "business_profile_id",
    "rating_distributions": "business_profile_id",
}


# =============================================================================
# Verification Functions
# =============================================================================

def verify_tables() -> dict:
    """Verify that all required tables exist in Supabase.

    Returns:
        Dictionary with verification results.
    """
    from supabase import create_client

    from reviewhub.config.settings import get_settings

    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        return {
            'success': False,
            'error': 'SUPABASE_URL and SUPABASE_KEY must be set',
        }

    supabase = create_client(
        settings.supabase_url,
        settings.supabase_key.get_secret_value(),
    )

    results = {
        'success': True,
        'tables': {},
        'missing': [],
        'errors': [],
    }

    for table, column in REQUIRED_TABLES.items():
        try:
            response = supabase.table(table).select(column).limit(1).execute()
            results['tables'][table] = {
                'exists': True,
                'accessible': True,
                'row_count': len(response.data) if response.data else 0,
            }
        except Exception as e:
            error_str = str(e)
            if 'does not exist' in error_str.lower() or 'relation' in error_str.lower():
                results['tables'][table] = {
                    'exists': False,
                    'accessible': False,
                }
                results['missing'].append(table)
                results['success'] = False
            else:
                results['tables'][table] = {
                    'exists': 'unknown',
                    'accessible': False,
                    'error': error_str[:100],
                }
                results['errors'].append(f"{table}: {error_str[:100]}")
                results['success'] = False

    return results


def print_verification_results(results: dict) -> None:
    """Print verification results in a formatted way."""
    print("\n" + "=" * 70)
    print("Supabase Table Verification Results")
    print("=" * 70)

    if 'error' in results:
        print(f"\nError: {results['error']}")
        return

    print(f"\nOverall Status: {'PASS' if results['success'] else 'FAIL'}")
    print("-" * 70)

    print("\nTable Status:")
    for table, info in results.get('tables', {}).items():
        status = "OK" if info.get('exists') and info.get('accessible') else "MISSING"
        icon = "[+]" if status == "OK" else "[-]"
        print(f"  {icon} {table}: {status}")
        if info.get('error'):
            print(f"      Error: {info['error']}")

    if results.get('missing'):
        print(f"\nMissing Tables: {', '.join(results['missing'])}")
        print("\nRun this script without --verify to get the SQL to create missing tables.")

    if results.get('errors'):
        print("\nErrors:")
        for error in results['errors']:
            print(f"  - {error}")

    print("\n" + "=" * 70)


# =============================================================================
# Main Functions
# =============================================================================

def get_setup_sql() -> str:
    """Get the complete setup SQL with timestamp."""
    return SCHEMA_SQL.format(
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    )


def get_drop_sql() -> str:
    """Get the SQL to drop all tables (use with caution!)."""
    return DROP_TABLES_SQL


def get_sql(sql_type: str = 'setup') -> str:
    if sql_type == 'drop':
        return get_drop_sql()
    return get_setup_sql()


def main():
    """Main entry point for the setup script."""
    parser = argparse.ArgumentParser(
        description='Generate Supabase setup SQL for ReviewHub',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Print setup SQL to console
    python scripts/setup_supabase.py

    # Save setup SQL to file
    python scripts/setup_supabase.py --output setup.sql

    # Verify tables exist in Supabase
    python scripts/setup_supabase.py --verify

    # Print drop SQL (use with caution!)
    python scripts/setup_supabase.py --type drop
        """
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Save SQL to file instead of printing'
    )

    parser.add_argument(
        '--type', '-t',
        type=str,
        choices=['setup', 'drop'],
        default='setup',
        help='Type of SQL to generate (default: setup)'
    )

    parser.add_argument(
        '--verify', '-v',
        action='store_true',
        help='Verify that tables exist in Supabase'
    )

    args = parser.parse_args()

    if args.verify:
        results = verify_tables()
        print_verification_results(results)
        sys.exit(0 if results.get('success') else 1)

    sql = get_sql(args.type)
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(sql)
        print(f"SQL saved to: {args.output}")
    else:
        if args.type == 'drop':
            print("\n" + "!" * 70)
            print("WARNING: This will DELETE ALL DATA!")
            print("!" * 70 + "\n")
        print(sql)


if __name__ == '__main__':
    main()
