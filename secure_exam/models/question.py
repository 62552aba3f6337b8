# secure_exam/models/question.py
from typing import List, Literal

from pydantic import BaseModel, Field, model_validator


class QuestionCreate(BaseModel):
    """
    Collection: "questions"
    Belongs to an exam through the exam name string, not an id.
    """
    examName: str = Field(..., min_length=1)
    questionText: str = Field(..., min_length=1)
    questionType: Literal["multiple_choice", "true_false", "short_answer"] = "multiple_choice"
    options: List[str] = Field(default_factory=list)
    correctAnswer: str = Field(..., min_length=1)
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    subject: str = ""
    topic: str = ""
    marks: int = Field(1, gt=0)

    @model_validator(mode="after")
    def check_options(self):
        if self.questionType == "multiple_choice":
            filled = [o for o in self.options if o.strip()]
            if len(filled) < 2:
                raise ValueError("multiple_choice questions need at least two options")
            self.options = filled
        return self
