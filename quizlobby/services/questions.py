import json
import logging
import random
from typing import Iterable, List, MutableSet, Optional

from quizlobby.models import Question, QuestionType

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    pass


def load_questions(path) -> List[Question]:
    """Load the question catalog from a JSON file.

    The file holds a list of ``{id, question, type, answer}`` objects. Numeric
    questions carry a number as ``answer``; text questions may omit it.
    """
    with open(path, encoding='utf-8') as fh:
        try:
            raw = json.load(fh)
        except json.JSONDecodeError as exc:
            raise CatalogError(f'{path}: invalid JSON ({exc})') from exc
    if not isinstance(raw, list) or not raw:
        raise CatalogError(f'{path}: expected a non-empty list of questions')

    questions = []
    seen = set()
    for item in raw:
        question = _parse_question(item)
        if question.id in seen:
            raise CatalogError(f'duplicate question id {question.id}')
        seen.add(question.id)
        questions.append(question)
    logger.info(f"[catalog-load] path={path} questions={len(questions)}")
    return questions


def _parse_question(item) -> Question:
    if not isinstance(item, dict):
        raise CatalogError(f'question entry must be an object, got {item!r}')
    try:
        qid = item['id']
        text = str(item['question']).strip()
        qtype = QuestionType(item.get('type', 'text'))
    except KeyError as exc:
        raise CatalogError(f'question entry missing {exc}') from exc
    except ValueError as exc:
        raise CatalogError(f'question {item.get("id")!r}: {exc}') from exc
    if not text:
        raise CatalogError(f'question {qid!r} has no text')

    answer = item.get('answer')
    if qtype == QuestionType.NUMBER and (isinstance(answer, bool) or not isinstance(answer, (int, float))):
        raise CatalogError(f'numeric question {qid!r} needs a numeric answer')
    return Question(id=qid, text=text, type=qtype, correct_answer=answer)


class QuestionSource:
    """Immutable catalog handing out non-repeating random picks."""

    def __init__(self, questions: Iterable[Question], rng: Optional[random.Random] = None):
        self._questions = tuple(questions)
        if not self._questions:
            raise CatalogError('question catalog is empty')
        self._rng = rng or random.Random()

    def __len__(self):
        return len(self._questions)

    def pick(self, used_ids: MutableSet) -> Question:
        """Pick a question whose id is not in ``used_ids``.

        Once every question has been used the set is cleared and the pick is
        made from the whole catalog again. The caller records the returned id.
        """
        remaining = [q for q in self._questions if q.id not in used_ids]
        if not remaining:
            used_ids.clear()
            remaining = list(self._questions)
        return self._rng.choice(remaining)
