"""Agent modules for the Crossfire debate engine.

Each role is a plain async function that receives its collaborators
(backend caller, tool client, evidence tracker) instead of building them.

Agents:
- Believer: Argues for the claim from web search evidence
- Skeptic: Argues against it from fact checks, archives and WHOIS
- Judge: Rules on both arguments and produces a Verdict

Supporting modules:
- llm: Backend adapters and the fallback-backed LLM caller
- evidence_tracker: Deduplicated, credibility-scored evidence
- verdict_parser: Verdict grammar and citation extraction
- prompts: System prompts and prompt builders
"""

from agents.believer import BELIEVER_TEMPERATURE, run_believer
from agents.evidence_tracker import EvidenceTracker, score_domain, validate_evidence_url
from agents.judge import JUDGE_TEMPERATURE, run_judge
from agents.llm import BackendReply, LLMCaller, build_chain, invoke_backend
from agents.skeptic import SKEPTIC_TEMPERATURE, run_skeptic
from agents.verdict_parser import extract_citations, parse_verdict

__all__ = [
    # Roles
    "run_believer",
    "run_skeptic",
    "run_judge",
    "BELIEVER_TEMPERATURE",
    "SKEPTIC_TEMPERATURE",
    "JUDGE_TEMPERATURE",
    # Backends
    "LLMCaller",
    "BackendReply",
    "build_chain",
    "invoke_backend",
    # Evidence
    "EvidenceTracker",
    "score_domain",
    "validate_evidence_url",
    # Parsing
    "parse_verdict",
    "extract_citations",
]
