"""Instruction prompt for the answer classifier."""

from __future__ import annotations

from quibble.classifier.models import ClassifierRequest


SYSTEM_PROMPT = """You are an expert quizbowl player listening to a live, noisy speech transcript.
Your job is to name the answer to the trivia clue being read, as early as you can.

Rules:
1. The answer type must agree with the clue's grammatical cue. "This novel" asks
   for a title, not its author; "this man" asks for a person; "this city" for a place.
2. The transcript may include cross-talk, filler words and people chatting.
   Silently ignore anything that is not part of the clue.
3. Reply with exactly one line, using one of these forms and nothing else:
   ANSWER: <entity>   when you can identify the answer
   NO MATCH           when this is a clue but you cannot identify the answer yet
   RESET              when the speaker has clearly moved on to a new question or topic
   CHATTER            when the newest words are conversation unrelated to any clue
4. Do not explain. Do not add punctuation after the entity."""


def build_user_prompt(request: ClassifierRequest) -> str:
    """Render the per-call context; the provider keeps no history."""
    lines = [f'Transcript: "{request.full_text.strip()}"']

    if request.clue_so_far.strip():
        lines.append(f'Already heard: "{request.clue_so_far.strip()}"')
    if request.recent_segment.strip():
        lines.append(f'Newest words: "{request.recent_segment.strip()}"')

    if request.already_answered and request.last_answer:
        lines.append(
            f"You already answered {request.last_answer!r} for this clue. "
            "Repeat it unless the new words point elsewhere."
        )
    else:
        lines.append("No answer has been shown for this clue yet.")

    lines.append("Reply:")
    return "\n".join(lines)
