from typing import List, Optional

from pydantic import BaseModel, Field

STATUS_PROCESSING = "processing"
STATUS_COMPLETE = "analysis_complete"
TERMINAL_STATUSES = {STATUS_COMPLETE, "completed"}


class RedFlag(BaseModel):
    text: str = ""
    meaning: str = ""


class InterviewQuestion(BaseModel):
    question: str = ""
    tip: str = ""


class Critique(BaseModel):
    toxicityScore: int = 0
    fitScore: int = 0
    atsScore: int = 0
    redFlags: List[RedFlag] = Field(default_factory=list)
    missingSkills: List[str] = Field(default_factory=list)
    summary: str = ""
    interviewQuestions: List[InterviewQuestion] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    id: str = ""
    toxicityScore: int = 0
    fitScore: int = 0
    atsScore: int = 0
    redFlags: List[RedFlag] = Field(default_factory=list)
    missingSkills: List[str] = Field(default_factory=list)
    interviewQuestions: List[InterviewQuestion] = Field(default_factory=list)
    summary: str = ""
    aiResponse: str = ""
    extractedText: str = ""
    status: str = ""
    createdAt: str = ""
    updatedAt: str = ""

    @property
    def is_complete(self) -> bool:
        return self.status in TERMINAL_STATUSES


class AnalyzeRequest(BaseModel):
    jobDescription: Optional[str] = None
    resumeText: Optional[str] = None
    resumeFile: Optional[str] = None
    resumeFileName: Optional[str] = None


class AnalyzeResponse(BaseModel):
    success: bool = True
    analysisId: str
    message: str = ""


class LatestAnalysisResponse(BaseModel):
    success: bool = True
    analysis: Optional[AnalysisResult] = None
    message: Optional[str] = None


class AdvanceRequest(BaseModel):
    analysisId: Optional[str] = None


class AdvanceResponse(BaseModel):
    success: bool = True
    status: str
    analysisData: Optional[AnalysisResult] = None
    message: Optional[str] = None


class ExtractRequest(BaseModel):
    file_path: Optional[str] = None
    user_id: Optional[str] = None


class ExtractResponse(BaseModel):
    success: bool = True
    job_id: str
    message: str = "PDF extraction job started"
