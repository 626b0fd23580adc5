"""Quiz and matching exercise generation.

Quiz: "which structure matches this description?" with the target and three
random distractors as lettered options. Matching: five structures, names on
the left and their first function on the right, shuffled independently.
A correct answer counts as an EASY review, a wrong one as HARD.
"""
import random

from config.settings import EXERCISE_DEFAULTS

MCQ_LETTERS = ['A', 'B', 'C', 'D']
QUIZ_PROMPT = 'Which structure matches this description?'


def outcome_difficulty(is_correct):
    return 'EASY' if is_correct else 'HARD'


def build_question(target, pool, num_options=EXERCISE_DEFAULTS['quiz_options'], rng=None):
    """One multiple-choice question about target, distractors drawn from pool."""
    rng = rng or random
    others = [n for n in pool if n['code'] != target['code']]
    rng.shuffle(others)
    choices = [target] + others[:num_options - 1]
    rng.shuffle(choices)
    return {
        'target_code': target['code'],
        'prompt': QUIZ_PROMPT,
        'description': target.get('description', ''),
        'options': [
            {'letter': MCQ_LETTERS[i], 'code': n['code'], 'text': n['name_local']}
            for i, n in enumerate(choices)
        ],
    }


def build_quiz(nodes, limit=EXERCISE_DEFAULTS['quiz_length'],
               num_options=EXERCISE_DEFAULTS['quiz_options'], rng=None):
    """Questions for the first `limit` nodes (callers pass them priority-ordered).

    Returns [] when there are fewer nodes than options.
    """
    nodes = list(nodes)
    if len(nodes) < num_options:
        return []
    return [build_question(target, nodes, num_options, rng)
            for target in nodes[:limit]]


def grade_quiz_answer(question, chosen_code):
    """Returns (is_correct, difficulty)."""
    is_correct = chosen_code == question['target_code']
    return is_correct, outcome_difficulty(is_correct)


def build_matching(nodes, size=EXERCISE_DEFAULTS['matching_size'], rng=None):
    """Random name/function matching exercise, or None with too few nodes."""
    rng = rng or random
    nodes = list(nodes)
    if len(nodes) < size:
        return None
    chosen = rng.sample(nodes, size)
    left = [{'code': n['code'], 'text': n['name_local']} for n in chosen]
    right = [{'code': n['code'], 'text': (n.get('functions') or [''])[0]} for n in chosen]
    rng.shuffle(right)
    return {'left': left, 'right': right}


def grade_matching(exercise, connections):
    """Grade {left_code: right_code} connections.

    Returns one result per connection: {code, correct, difficulty}, where
    code is the left-hand structure that gets the review.
    """
    left_codes = {item['code'] for item in exercise['left']}
    right_codes = {item['code'] for item in exercise['right']}
    results = []
    for left_code, right_code in connections.items():
        if left_code not in left_codes or right_code not in right_codes:
            raise ValueError(f'Connection {left_code!r} -> {right_code!r} is not part of the exercise')
        correct = left_code == right_code
        results.append({
            'code': left_code,
            'correct': correct,
            'difficulty': outcome_difficulty(correct),
        })
    return results
