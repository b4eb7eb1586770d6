"""AI-assisted question synthesis from segmented course material."""
from examgen.services.question_synthesizer.synthesizer import QuestionSynthesizer, SynthesisResult

__all__ = ["QuestionSynthesizer", "SynthesisResult"]
