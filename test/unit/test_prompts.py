"""
Unit tests for backend/prepquiz/prompts/__init__.py
Tests: quiz prompt content (counts, topic / foundational sentinel, merge topic,
difficulty policies, LaTeX and link rules), retry mistake block, suggestion and
improvement prompts. Pure string rendering, no LLM.
"""

import sys
import os
import pytest

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend"))
sys.path.insert(0, BACKEND_DIR)

os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")

from prepquiz.core.catalog import FOUNDATIONAL_TOPIC
from prepquiz.prompts import get_improvement_prompt, get_quiz_prompt, get_suggestions_prompt
from prepquiz.services.quiz.schemas import QuizConfig


# ────────────────────────────────────────────────────────────────────────────
# Quiz prompt
# ────────────────────────────────────────────────────────────────────────────

class TestQuizPrompt:

    @pytest.mark.parametrize("exam,subject,topic,level", [
        ("JEE", "Physics", "Kinematics", "Level 3: Boards"),
        ("JEE", "Maths", "Definite Integrals", "Level 1: Advanced"),
        ("NEET", "Biology", "Human Physiology", "Level 2: Mains/NEET"),
        ("NEET", "Chemistry", "Chemical Bonding", "Level 3: Boards"),
    ])
    def test_contains_literal_config_tokens(self, exam, subject, topic, level):
        config = QuizConfig(exam=exam, subject=subject, topic=topic, level=level)
        prompt = get_quiz_prompt(config)
        assert f'"{topic}"' in prompt
        assert exam in prompt
        assert subject in prompt
        assert f"appropriate for {level}" in prompt

    def test_requests_twenty_questions_by_default(self, physics_config):
        assert "Generate a 20-question multiple-choice quiz" in get_quiz_prompt(physics_config)

    def test_question_count_override(self, physics_config):
        assert "Generate a 5-question" in get_quiz_prompt(physics_config, question_count=5)

    def test_foundational_sentinel_samples_whole_syllabus(self):
        config = QuizConfig(exam="NEET", subject="Chemistry", topic=FOUNDATIONAL_TOPIC, level="Level 2: Mains/NEET")
        prompt = get_quiz_prompt(config)
        assert "entire Chemistry syllabus for NEET" in prompt
        assert "The primary topic is" not in prompt

    def test_named_topic_is_primary(self, physics_config):
        prompt = get_quiz_prompt(physics_config)
        assert 'The primary topic is "Kinematics".' in prompt
        assert "entire Physics syllabus" not in prompt

    def test_merge_topic_blended(self):
        config = QuizConfig(
            exam="JEE", subject="Physics", topic="Kinematics",
            level="Level 1: Advanced", merge_topic="Work and Energy",
        )
        prompt = get_quiz_prompt(config)
        assert 'secondary topic "Work and Energy"' in prompt
        assert "multi-concept questions" in prompt

    def test_no_merge_instruction_without_merge_topic(self, physics_config):
        assert "secondary topic" not in get_quiz_prompt(physics_config)

    def test_all_three_difficulty_policies_present(self, physics_config):
        prompt = get_quiz_prompt(physics_config)
        assert "highly challenging, multi-concept, and analytical" in prompt
        assert "core concepts with medium difficulty" in prompt
        assert "straightforward and knowledge-based" in prompt

    def test_math_markup_convention(self, physics_config):
        prompt = get_quiz_prompt(physics_config)
        assert "$...$ for inline equations" in prompt
        assert "$$...$$ for block equations" in prompt

    def test_concept_tag_and_resource_link_rules(self, physics_config):
        prompt = get_quiz_prompt(physics_config)
        assert "'sourceHint'" in prompt
        assert "'resourceLink'" in prompt
        assert "paywall" in prompt
        assert "Do not invent URLs." in prompt

    def test_no_mistake_block_without_incorrect_answers(self, physics_config):
        assert "made these mistakes" not in get_quiz_prompt(physics_config)
        assert "made these mistakes" not in get_quiz_prompt(physics_config, [])


# ────────────────────────────────────────────────────────────────────────────
# Retry prompt (incorrect-answer driven)
# ────────────────────────────────────────────────────────────────────────────

class TestRetryQuizPrompt:

    def test_each_mistake_lists_chosen_and_correct_option(self, physics_config, incorrect_answers):
        prompt = get_quiz_prompt(physics_config, incorrect_answers)
        for ans in incorrect_answers:
            assert f'Question: "{ans.question}"' in prompt
            assert f'My incorrect answer: "{ans.options[ans.user_answer_index]}"' in prompt
            assert f'Correct answer: "{ans.options[ans.correct_answer_index]}"' in prompt

    def test_requests_a_different_targeted_quiz(self, physics_config, incorrect_answers):
        prompt = get_quiz_prompt(physics_config, incorrect_answers)
        assert "generate a new, different quiz" in prompt
        assert "not identical" in prompt

    def test_retry_prompt_differs_from_first_attempt(self, physics_config, incorrect_answers):
        first = get_quiz_prompt(physics_config)
        retry = get_quiz_prompt(physics_config, incorrect_answers)
        assert retry != first
        assert retry.startswith(first.rstrip().split("\n")[0])


# ────────────────────────────────────────────────────────────────────────────
# Suggestion prompts
# ────────────────────────────────────────────────────────────────────────────

class TestSuggestionPrompts:

    def test_suggestions_prompt(self, physics_config, incorrect_answers):
        prompt = get_suggestions_prompt(physics_config, incorrect_answers)
        assert "Physics (Kinematics) for the JEE exam" in prompt
        assert "2-3 highly relevant and reputable books" in prompt
        assert "2-3 specific and helpful YouTube videos" in prompt
        assert prompt.count("- Question:") == len(incorrect_answers)
        assert "Never fabricate a link" in prompt

    def test_improvement_prompt(self, physics_config, incorrect_answers):
        prompt = get_improvement_prompt(physics_config, incorrect_answers)
        assert 'the topic "Kinematics"' in prompt
        assert "2-4 granular, specific topics" in prompt
        assert "'topicName'" in prompt and "'reason'" in prompt and "'resourceLink'" in prompt
        assert "Do not invent URLs." in prompt
        for ans in incorrect_answers:
            assert f'(My incorrect answer was "{ans.user_answer_text}")' in prompt
