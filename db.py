"""Supabase client and exam store factories. Client is cached via Streamlit for the UI."""
import logging
import os

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

from exam_engine.service import ExamService
from exam_engine.store import SupabaseStore

load_dotenv()

logger = logging.getLogger(__name__)


def _env_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    logger.debug("Creating Supabase client for %s", url)
    return create_client(url, key)


@st.cache_resource
def get_supabase() -> Client:
    return _env_client()


def get_supabase_uncached() -> Client:
    """For CLI/scripts (no Streamlit context)."""
    return _env_client()


def get_store(cached: bool = True) -> SupabaseStore:
    """Record store over Supabase. Only the client is cached; exam state is always re-read."""
    client = get_supabase() if cached else get_supabase_uncached()
    return SupabaseStore(client)


def get_exam_service(cached: bool = True) -> ExamService:
    return ExamService(get_store(cached=cached))
