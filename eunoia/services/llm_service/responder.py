"""Persona responders.

A responder turns a session's ordered history into the next assistant
reply. Responders are only called for messages that did not trigger a
crisis intervention; timeouts and fallback are the caller's concern.
"""
import logging
import random
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from eunoia.shared.models import Message, MessageRole
from .base_llm import BaseLLM
from .personas import PERSONAS, DEFAULT_PERSONA_ID, Persona

logger = logging.getLogger(__name__)


EMOTION_KEYWORDS = {
    "anxiety": ("anxious", "worried", "nervous", "scared", "panic", "stress"),
    "sadness": ("sad", "depressed", "down", "hopeless", "empty", "lonely"),
    "anger": ("angry", "mad", "frustrated", "annoyed", "furious", "irritated"),
    "overwhelm": ("overwhelmed", "too much", "can't handle", "exhausted", "burned out"),
}

NEED_KEYWORDS = {
    "coping": ("don't know how", "can't handle", "struggling with", "overwhelmed"),
    "support": ("alone", "no one understands", "isolated", "need help"),
    "clarity": ("confused", "don't understand", "mixed up", "unclear"),
    "change": ("want to change", "need to improve", "better", "different"),
}


def detect_keywords(text: str, keyword_map: Dict[str, Sequence[str]]) -> List[str]:
    """Labels from keyword_map with at least one keyword in text, in map order."""
    lowered = text.lower()
    return [
        label for label, keywords in keyword_map.items()
        if any(keyword in lowered for keyword in keywords)
    ]


class Responder(ABC):
    """Produces the next assistant reply for a session."""

    @abstractmethod
    async def respond(
        self,
        persona_id: str,
        conversation_history: Sequence[Message],
        goals: Sequence[str] = (),
    ) -> str:
        """Reply to the latest user message in conversation_history."""


class RuleBasedResponder(Responder):
    """Template replies in each persona's voice.

    The first user message of a session gets the persona greeting. Later
    messages get a reply shaped by the emotions and needs detected in the
    latest user message. Template choice draws from `rng`, so a seeded
    random.Random makes replies reproducible.
    """

    EMPATHIC_REFLECTIONS = (
        "It sounds like you've been dealing with a lot lately.",
        "I can imagine how difficult this situation must be for you.",
        "That sounds really challenging to navigate.",
        "It takes strength to acknowledge these feelings.",
    )

    GOAL_QUESTIONS = (
        "What would you most like to be different in your life?",
        "If this situation improved, what would that look like for you?",
        "What small step could you take this week toward feeling better?",
    )

    MINDFUL_QUESTIONS = (
        "What do you notice happening in your body as we talk about this?",
        "If you could send compassion to the part of you that's struggling, what would you say?",
        "What would it feel like to hold these difficult emotions with kindness?",
    )

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._styles: Dict[str, Callable[[str, List[str], List[str]], str]] = {
            "empathetic": self._empathic,
            "analytical": self._analytical,
            "supportive": self._supportive,
            "mindful": self._mindful,
        }

    async def respond(
        self,
        persona_id: str,
        conversation_history: Sequence[Message],
        goals: Sequence[str] = (),
    ) -> str:
        return self.compose(persona_id, conversation_history, goals)

    def compose(
        self,
        persona_id: str,
        conversation_history: Sequence[Message],
        goals: Sequence[str] = (),
    ) -> str:
        """Synchronous core of respond()."""
        persona = PERSONAS.get(persona_id) or PERSONAS[DEFAULT_PERSONA_ID]
        user_turns = [m for m in conversation_history if m.role == MessageRole.USER]

        if len(user_turns) <= 1:
            return persona.greet(goals)

        text = user_turns[-1].content.lower()
        emotions = detect_keywords(text, EMOTION_KEYWORDS)
        needs = detect_keywords(text, NEED_KEYWORDS)

        return self._styles[persona.id](text, emotions, needs)

    def _empathic(self, text: str, emotions: List[str], needs: List[str]) -> str:
        if "anxiety" in emotions:
            validation = "I can hear the anxiety in what you're sharing, and that must feel really overwhelming."
        elif "sadness" in emotions:
            validation = "It sounds like you're carrying some heavy feelings right now."
        elif "anger" in emotions:
            validation = "I can sense the frustration you're experiencing."
        else:
            validation = "Thank you for sharing something so personal with me."

        if "coping" in needs:
            question = "What have you tried so far that's helped, even a little bit?"
        elif "support" in needs:
            question = "Who in your life do you feel most comfortable talking to?"
        elif "clarity" in needs:
            question = "What part of this situation would be most helpful to understand better?"
        else:
            question = "What would feel most supportive for you right now?"

        reflection = self.rng.choice(self.EMPATHIC_REFLECTIONS)
        return (
            f"{validation} {reflection}\n\n"
            "I can hear that you're going through something difficult, and I want "
            "you to know that your feelings are completely valid. It takes courage "
            f"to share these experiences. {question}"
        )

    def _analytical(self, text: str, emotions: List[str], needs: List[str]) -> str:
        if "always" in text or "never" in text:
            pattern = "some all-or-nothing thinking patterns"
        elif "should" in text or "must" in text:
            pattern = "some self-critical expectations"
        elif "what if" in text:
            pattern = "anticipatory worry patterns"
        else:
            pattern = "some thought patterns we can explore"

        if "anxiety" in emotions:
            technique = (
                "One technique that can be helpful is the 5-4-3-2-1 grounding method: "
                "notice 5 things you can see, 4 you can touch, 3 you can hear, "
                "2 you can smell, and 1 you can taste."
            )
        else:
            technique = (
                "We can work on thought challenging, examining the evidence for "
                "and against these thoughts."
            )

        return (
            f"I notice {pattern} in what you're sharing. This is actually quite common, "
            f"and there are specific techniques we can use to address this. {technique}\n\n"
            "Let's explore this together: What evidence do you have that supports this "
            "thought, and what evidence might challenge it? Understanding these patterns "
            "can help us develop more effective coping strategies."
        )

    def _supportive(self, text: str, emotions: List[str], needs: List[str]) -> str:
        if "change" in needs:
            perspective = "Wanting things to be different is already the first step toward change."
        else:
            perspective = "Every challenge is also an opportunity to develop new skills and resilience."

        question = self.rng.choice(self.GOAL_QUESTIONS)
        return (
            "I notice that you're being really honest and self-aware about your situation, "
            "which shows incredible insight. I can see the effort you're putting into "
            f"understanding and improving your situation. {perspective}\n\n"
            "Remember, growth happens one step at a time, and you're already taking "
            f"important steps by being here. {question}"
        )

    def _mindful(self, text: str, emotions: List[str], needs: List[str]) -> str:
        question = self.rng.choice(self.MINDFUL_QUESTIONS)
        return (
            "I notice the thoughts and feelings you're describing seem to be taking up "
            "a lot of space in your awareness right now. Notice how these thoughts and "
            "feelings are present right now, without needing to change them immediately. "
            "These feelings are information about your inner experience. They don't "
            "define you, and they will change.\n\n"
            f"Take a breath with me. {question} Sometimes simply observing our inner "
            "experience with kindness can be profoundly healing."
        )


class LLMResponder(Responder):
    """Replies generated by an LLM with the persona as system prompt."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    @staticmethod
    def build_system_prompt(persona: Persona, goals: Sequence[str]) -> str:
        prompt = persona.system_prompt
        if goals:
            prompt += f"\n\nThe client's goals for this session: {', '.join(goals)}."
        return prompt

    async def respond(
        self,
        persona_id: str,
        conversation_history: Sequence[Message],
        goals: Sequence[str] = (),
    ) -> str:
        persona = PERSONAS.get(persona_id) or PERSONAS[DEFAULT_PERSONA_ID]
        if not conversation_history or conversation_history[-1].role != MessageRole.USER:
            raise ValueError("Conversation must end with a user message")

        earlier = [
            {"role": m.role.value, "content": m.content}
            for m in conversation_history[:-1]
        ]
        response = await self.llm.generate(
            prompt=conversation_history[-1].content,
            system_prompt=self.build_system_prompt(persona, goals),
            history=earlier,
        )

        if not response.text:
            raise ValueError("LLM returned an empty reply")

        logger.info(
            "LLM_RESPONSE_GENERATED",
            extra={
                "persona_id": persona.id,
                "model": response.model,
                "latency_ms": response.latency_ms,
            }
        )
        return response.text
