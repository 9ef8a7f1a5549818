from .base import Agent, AgentResult, Orchestrator
from .tokenizer import TokenizerAgent
from .generator import CombinationAgent, GenerationOptions
from .classifier import StrengthClassifierAgent
from .scorer import PriorityScoringAgent
from .gap_detector import GapDetectionAgent, GapAnalysisInput

__all__ = [
    "Agent", "AgentResult", "Orchestrator",
    "TokenizerAgent", "CombinationAgent", "GenerationOptions",
    "StrengthClassifierAgent", "PriorityScoringAgent",
    "GapDetectionAgent", "GapAnalysisInput",
]
