#!/usr/bin/env python3
"""
Core voice chat loop implementation.
"""

import asyncio
import enum
import sys
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .errors import LanguageModelError, SpeechToTextError, TextToSpeechError, VoiceChatError
from .llm import LanguageModelProcessor
from .stt import UtteranceListener
from .tts import BaseSpeaker, create_speaker


class LoopState(enum.Enum):
    AWAITING_UTTERANCE = "awaiting_utterance"
    HAVE_UTTERANCE = "have_utterance"
    RESPONDING = "responding"
    TERMINATING = "terminating"
    ENDED = "ended"


class EndReason(enum.Enum):
    TERMINATION_PHRASE = "termination_phrase"
    TIMEOUT = "timeout"
    ERROR = "error"
    INTERRUPTED = "interrupted"


@dataclass
class SessionResult:
    reason: EndReason
    turns: int
    error: Optional[BaseException] = None


class VoiceChatLoop:
    """
    Turn-taking loop: listen for one utterance, stop on the termination
    phrase, otherwise ask the model and speak its reply, then listen again.

    The listener, model client and speaker are owned by the loop and can be
    injected, so independent sessions never share history or buffers.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        listener: Optional[UtteranceListener] = None,
        llm: Optional[LanguageModelProcessor] = None,
        speaker: Optional[BaseSpeaker] = None,
    ):
        self.config = config or Config()
        self.listener = listener or UtteranceListener(self.config)
        self.llm = llm or LanguageModelProcessor(self.config)
        self.speaker = speaker or create_speaker(self.config)
        self.state = LoopState.AWAITING_UTTERANCE
        self.turns = 0
        self.result: Optional[SessionResult] = None

    def is_termination(self, utterance: str) -> bool:
        """True when the utterance contains the termination phrase, ignoring case."""
        return self.config.termination_phrase.lower() in utterance.lower()

    async def process_turn(self) -> bool:
        """Process a single conversation turn. Returns False once the session should end."""
        self.state = LoopState.AWAITING_UTTERANCE
        utterance = await self.listener.listen()
        if not utterance:
            print("🛑 No utterance captured.", flush=True)
            return True  # Nothing captured; listen again

        self.state = LoopState.HAVE_UTTERANCE
        if self.is_termination(utterance):
            self.state = LoopState.TERMINATING
            return False

        self.state = LoopState.RESPONDING
        try:
            reply = await self.llm.process(utterance)
            await self.speaker.speak(reply)
        except (LanguageModelError, TextToSpeechError) as e:
            if self.config.on_turn_error != "skip":
                raise
            print(f"[Turn Error] {e}; skipping turn", file=sys.stderr)
            return True

        self.turns += 1
        return True

    async def _converse(self):
        while await self.process_turn():
            pass

    async def run(self) -> SessionResult:
        """Run one session until the termination phrase, the timeout or a fatal error.

        Reaches ENDED exactly once; the returned result records why.
        """
        if self.state is LoopState.ENDED:
            raise RuntimeError("Session already ended; create a new VoiceChatLoop")
        print("Booting voice chat loop…", flush=True)

        # Anything that escapes without being classified below is an interruption.
        reason = EndReason.INTERRUPTED
        error: Optional[BaseException] = None
        try:
            if self.config.session_timeout_s is not None:
                await asyncio.wait_for(self._converse(), timeout=self.config.session_timeout_s)
            else:
                await self._converse()
            reason = EndReason.TERMINATION_PHRASE
        except asyncio.TimeoutError:
            print("⏰ Session timed out.", flush=True)
            reason = EndReason.TIMEOUT
        except SpeechToTextError as e:
            print(f"[STT Error] {e}", file=sys.stderr)
            reason, error = EndReason.ERROR, e
        except LanguageModelError as e:
            print(f"[LLM Error] {e}", file=sys.stderr)
            reason, error = EndReason.ERROR, e
        except TextToSpeechError as e:
            print(f"[TTS Error] {e}", file=sys.stderr)
            reason, error = EndReason.ERROR, e
        except (KeyboardInterrupt, asyncio.CancelledError):
            print("\nExiting…")
            raise
        except Exception as e:
            print(f"[Error] {e}", file=sys.stderr)
            reason, error = EndReason.ERROR, e
            raise
        finally:
            await self.cleanup()
            self.state = LoopState.ENDED
            self.result = SessionResult(reason=reason, turns=self.turns, error=error)

        return self.result

    async def cleanup(self):
        """Clean up resources."""
        if self.speaker:
            await self.speaker.close()


async def main(config: Optional[Config] = None) -> SessionResult:
    """Main entry point for running one conversation session."""
    chatbot = VoiceChatLoop(config or Config.from_env())
    return await chatbot.run()


def cli():
    """Console-script entry point."""
    try:
        result = asyncio.run(main())
    except KeyboardInterrupt:
        return
    except (VoiceChatError, ValueError, OSError) as e:
        print(f"Error running app: {e}", file=sys.stderr)
        sys.exit(1)
    print("Conversation ended. Goodbye!")
    if result.reason is EndReason.ERROR:
        sys.exit(1)
