CRITIQUE_PROMPT = """
You are a harsh career coach analyzing a job description for toxic red flags and comparing it with a candidate's resume.

JOB DESCRIPTION:
"{job_description}"

RESUME:
"{resume_text}"

Analyze this job description for toxicity and how well the resume matches it.

Return ONLY a valid JSON object (no markdown, no extra text) with:
- toxicityScore: number (0-100, where 100 is highly toxic / full of red flags)
- redFlags: array of objects {{"text": "quoted phrase from the JD", "meaning": "why it is bad/toxic"}} (max 4)
- fitScore: number (0-100, match between resume and JD)
- atsScore: number (0-100, how likely the resume is to pass an applicant tracking system for this JD)
- missingSkills: array of strings (top 3 skills missing from the resume)
- summary: string (short professional summary rewriting the resume to match the JD better)
- interviewQuestions: array of objects {{"question": "a specific, challenging question", "tip": "brief tip on how to answer"}} (exactly 3)

RESPOND WITH ONLY THE JSON OBJECT, NO ADDITIONAL TEXT.
"""


def build_critique_prompt(job_description: str, resume_text: str) -> str:
    return CRITIQUE_PROMPT.format(
        job_description=job_description[:8000],
        resume_text=resume_text[:8000],
    )
