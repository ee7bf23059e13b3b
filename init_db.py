"""Print the Supabase schema the exam engine expects (run it in the Supabase SQL Editor)."""
import os

from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")

# SQL schema
SCHEMA_SQL = """
-- Certifications (exam definitions)
CREATE TABLE IF NOT EXISTS certifications (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    description TEXT DEFAULT '',
    provider TEXT DEFAULT '',
    access_code TEXT,
    duration INT NOT NULL DEFAULT 60,
    passing_score INT NOT NULL DEFAULT 70 CHECK (passing_score BETWEEN 0 AND 100),
    total_questions INT NOT NULL DEFAULT 0,
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Question Bank
CREATE TABLE IF NOT EXISTS questions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    certification_id UUID NOT NULL REFERENCES certifications(id) ON DELETE CASCADE,
    question_text TEXT NOT NULL,
    question_type VARCHAR(20) NOT NULL DEFAULT 'multiple_choice'
        CHECK (question_type IN ('multiple_choice', 'multiple_answer', 'true_false')),
    difficulty INT,
    points INT NOT NULL DEFAULT 1 CHECK (points > 0),
    explanation TEXT,
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS answer_options (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    question_id UUID NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
    option_text TEXT NOT NULL,
    is_correct BOOLEAN DEFAULT FALSE
);

-- Exam Sessions
CREATE TABLE IF NOT EXISTS exam_sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    certification_id UUID NOT NULL REFERENCES certifications(id),
    status VARCHAR(20) NOT NULL DEFAULT 'in_progress'
        CHECK (status IN ('in_progress', 'passed', 'failed')),
    time_remaining INT,
    start_time TIMESTAMPTZ DEFAULT NOW(),
    end_time TIMESTAMPTZ,
    score INT,
    passed BOOLEAN
);

-- Fixed question order per session
CREATE TABLE IF NOT EXISTS exam_questions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    exam_session_id UUID NOT NULL REFERENCES exam_sessions(id) ON DELETE CASCADE,
    question_id UUID NOT NULL REFERENCES questions(id),
    order_num INT NOT NULL,
    UNIQUE(exam_session_id, question_id),
    UNIQUE(exam_session_id, order_num)
);

-- One row per (session, question); re-submission upserts
CREATE TABLE IF NOT EXISTS exam_answers (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    exam_session_id UUID NOT NULL REFERENCES exam_sessions(id) ON DELETE CASCADE,
    question_id UUID NOT NULL REFERENCES questions(id),
    selected_options JSONB NOT NULL DEFAULT '[]',
    is_correct BOOLEAN,
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(exam_session_id, question_id)
);

-- At most one certificate per passed session
CREATE TABLE IF NOT EXISTS certificates (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    certificate_number TEXT NOT NULL UNIQUE,
    user_id UUID NOT NULL,
    certification_id UUID NOT NULL REFERENCES certifications(id),
    exam_session_id UUID NOT NULL UNIQUE REFERENCES exam_sessions(id),
    verification_hash TEXT NOT NULL UNIQUE,
    issued_date TIMESTAMPTZ DEFAULT NOW(),
    expiry_date TIMESTAMPTZ,
    revoked BOOLEAN DEFAULT FALSE
);

-- Create indexes for performance
CREATE INDEX IF NOT EXISTS idx_questions_certification_id ON questions(certification_id);
CREATE INDEX IF NOT EXISTS idx_answer_options_question_id ON answer_options(question_id);
CREATE INDEX IF NOT EXISTS idx_exam_sessions_user_id ON exam_sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_exam_sessions_status ON exam_sessions(status);
CREATE INDEX IF NOT EXISTS idx_exam_answers_session_id ON exam_answers(exam_session_id);
CREATE INDEX IF NOT EXISTS idx_certificates_user_id ON certificates(user_id);
"""


if __name__ == "__main__":
    print("Exam engine schema for Supabase")
    print(f"URL: {SUPABASE_URL or '(SUPABASE_URL not set)'}")
    print("\nThe Supabase client cannot run DDL; paste this into Supabase > SQL Editor > New Query:")
    print(SCHEMA_SQL)
