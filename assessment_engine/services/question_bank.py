"""Question bank holding persisted assessment questions."""

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles
import yaml
from pydantic import ValidationError

from ..models.enums import Difficulty, QuestionDifficulty, QuestionType
from ..models.question import Question
from ..models.results import QuestionMetadata
from ..utils.exceptions import DataIntegrityError, StorageError
from ..utils.logging import get_logger


METADATA_LIMIT = 20


@dataclass
class QuestionFilter:
    """Criteria used to draw questions from the bank.

    Empty ``types`` and ``difficulties`` mean any. ``company`` and ``role``
    match case-insensitively as substrings, and a question without the
    field always matches.
    """

    types: List[QuestionType] = field(default_factory=list)
    difficulties: List[QuestionDifficulty] = field(default_factory=list)
    company: Optional[str] = None
    role: Optional[str] = None

    def matches(self, question: Question) -> bool:
        if not question.is_active:
            return False
        if self.types and question.type not in self.types:
            return False
        if self.difficulties and question.difficulty not in self.difficulties:
            return False
        if not _field_matches(self.company, question.company):
            return False
        if not _field_matches(self.role, question.role):
            return False
        return True

    def describe(self) -> Dict[str, Any]:
        return {
            "types": [t.value for t in self.types],
            "difficulties": [d.value for d in self.difficulties],
            "company": self.company,
            "role": self.role,
        }


def _field_matches(wanted: Optional[str], actual: Optional[str]) -> bool:
    if not wanted or not actual:
        return True
    return wanted.strip().lower() in actual.lower()


class QuestionBank:
    """In-memory index of persisted questions loaded from YAML."""

    def __init__(self, questions: Optional[Iterable[Question]] = None, rng: Optional[random.Random] = None):
        self._questions: Dict[str, Question] = {}
        self._rng = rng or random.Random()
        self.logger = get_logger("question_bank")
        for question in questions or []:
            self.add(question)

    @classmethod
    async def from_yaml(cls, path: str, rng: Optional[random.Random] = None) -> "QuestionBank":
        """Load a question bank from a YAML file with a top-level ``questions`` list.

        Raises:
            StorageError: If the file cannot be read or parsed.
            DataIntegrityError: If a record is invalid or an id is duplicated.
        """
        bank = cls(rng=rng)
        await bank.load(path)
        return bank

    async def load(self, path: str) -> int:
        """Load questions from a YAML file, returning how many were added."""
        file_path = Path(path)
        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
                content = await f.read()
            data = yaml.safe_load(content) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Failed to load question bank: {str(e)}", file_path=str(file_path)) from e

        records = data.get("questions") or []
        for index, record in enumerate(records):
            try:
                question = Question.model_validate({**record, "is_ai_generated": False})
            except (ValidationError, TypeError) as e:
                raise DataIntegrityError(
                    f"Invalid question record #{index} in {file_path}: {e}",
                    data_type="Question",
                ) from e
            self.add(question)

        self.logger.info(f"Loaded {len(records)} questions from {file_path}")
        return len(records)

    def add(self, question: Question) -> None:
        """Add a question to the bank.

        Raises:
            DataIntegrityError: If a question with the same id already exists.
        """
        if question.question_id in self._questions:
            raise DataIntegrityError(
                f"Duplicate question id: {question.question_id}",
                data_type="Question",
                constraint="unique question_id",
            )
        self._questions[question.question_id] = question

    def get(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    def __len__(self) -> int:
        return len(self._questions)

    def find(self, question_filter: QuestionFilter) -> List[Question]:
        """Get all questions matching a filter."""
        return [q for q in self._questions.values() if question_filter.matches(q)]

    def sample(self, question_filter: QuestionFilter, count: int) -> List[Question]:
        """Draw up to ``count`` matching questions at random without replacement."""
        candidates = self.find(question_filter)
        if count >= len(candidates):
            self._rng.shuffle(candidates)
            return candidates
        return self._rng.sample(candidates, count)

    def metadata(self) -> QuestionMetadata:
        """Distinct values across active questions."""
        active = [q for q in self._questions.values() if q.is_active]

        def distinct(values: Iterable[Optional[str]]) -> List[str]:
            return sorted({v for v in values if v})

        return QuestionMetadata(
            types=distinct(q.type.value for q in active),
            categories=distinct(q.category for q in active),
            companies=distinct(q.company for q in active)[:METADATA_LIMIT],
            roles=distinct(q.role for q in active)[:METADATA_LIMIT],
            difficulties=[d.value for d in Difficulty],
        )
