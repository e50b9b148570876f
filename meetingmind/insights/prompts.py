"""Prompt templates for live suggestions and the end-of-meeting summary."""

LIVE_PROMPT = """You are assisting in a live meeting. Based on the transcript so far, produce:

SUGGESTED QUESTIONS:
- 2-4 specific, relevant questions the participants could ask next

MEETING INSIGHTS:
- 2-4 key observations about topics, dynamics or open issues

Rules:
- Use exactly the two section headers above
- One item per line, each starting with "- "
- No preamble or closing remarks

Transcript:
{transcript}
"""

FINAL_PROMPT = """The meeting has ended. Analyze the complete transcript and produce these sections:

SUMMARY:
- 2-4 sentences describing what the meeting covered

KEY POINTS:
- The most important points discussed

KEY DECISIONS:
- Decisions that were made (write "None recorded" if there were none)

ACTION ITEMS:
- Tasks with an owner when one was mentioned

FOLLOW-UPS:
- Items that need follow-up after the meeting

OPEN QUESTIONS:
- Questions that were raised but not resolved

SUGGESTED QUESTIONS:
- Questions worth asking in the next meeting

MEETING INSIGHTS:
- Observations about the discussion as a whole

Rules:
- Use exactly the section headers above
- One item per line, each starting with "- "
- No preamble or closing remarks

Transcript:
{transcript}
"""


def build_prompt(transcript: str, final: bool = False) -> str:
    template = FINAL_PROMPT if final else LIVE_PROMPT
    return template.format(transcript=transcript.strip())
