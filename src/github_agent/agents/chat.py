"""
Repository chat assistant.

Answers questions about a repository using its stored metadata, the
cached full analysis and the recent conversation history. Conversations
and messages are persisted so follow-up questions keep their context.
"""

import json
import logging
import math
import time
from typing import Any, Iterator, Optional

from sqlalchemy.orm import Session

from github_agent.agents.prompts import AGENT_CONFIGS, CHAT_INSTRUCTIONS
from github_agent.agents.tools import (
    analyze_files,
    assess_code_quality,
    detect_tech_stack,
    fetch_repository_data,
)
from github_agent.config import settings
from github_agent.db.repositories import (
    AnalysisCacheRepository,
    ConversationRepository,
    MessageRepository,
    RepositoryRepository,
    coerce_uuid,
)
from github_agent.exceptions import GitHubAPIError
from github_agent.integrations.github import GitHubClient, commit_date, parse_github_url
from github_agent.llm import LLMProvider, get_default_provider
from github_agent.models.db import Conversation, Message, Repository
from github_agent.single_user import get_single_user_id

logger = logging.getLogger(__name__)

APOLOGY = "I apologize, but I encountered an issue generating a response."
STREAM_ERROR = "I apologize, but I encountered an error generating the response."


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def fallback_response(repository: Optional[Repository]) -> str:
    """Deterministic markdown reply used when the LLM call fails."""
    name = repository.name if repository else "repository"
    text = f"I can help you with information about the **{name}**."
    if repository is None:
        return text

    text += (
        f"\n\nThis is a **{repository.language or 'multi-language'}** repository "
        f"with {repository.stars or 0} stars and {repository.forks or 0} forks."
    )
    if repository.description:
        text += f" {repository.description}"
    text += (
        "\n\nSome things I can help you with:\n"
        "- Explain the codebase structure and architecture\n"
        "- Analyze the technology stack and dependencies\n"
        "- Suggest improvements and optimizations\n"
        "- Help with specific technical questions\n"
        "- Generate development tasks and priorities\n\n"
        "What would you like to know more about?"
    )
    return text


def _github_sections(github_data: dict[str, Any]) -> list[str]:
    sections: list[str] = []

    commits = github_data.get("commits") or []
    if commits:
        lines = ["RECENT COMMITS (Last 10):"]
        for index, commit in enumerate(commits[:10], start=1):
            info = commit.get("commit") or {}
            date = commit_date(commit)
            subject = (info.get("message") or "").split("\n")[0]
            lines.append(
                f"{index}. {subject}"
                f" ({(info.get('author') or {}).get('name', 'Unknown')},"
                f" {date.date().isoformat() if date else 'unknown date'})"
            )
        sections.append("\n".join(lines))

    contents = github_data.get("file_contents") or {}
    if contents.get("README.md") or contents.get("package.json"):
        lines = ["REPOSITORY FILES ANALYZED:"]
        if contents.get("README.md"):
            lines.append(
                f"README.md Content (first 500 chars): {contents['README.md'][:500]}..."
            )
        if contents.get("package.json"):
            lines.append(f"package.json Content: {contents['package.json']}")
        sections.append("\n".join(lines))

    open_issues = [
        i
        for i in github_data.get("issues") or []
        if i.get("state") == "open" and not i.get("pull_request")
    ][:5]
    if open_issues:
        lines = ["RECENT OPEN ISSUES:"]
        lines += [
            f"{index}. #{issue.get('number')}: {issue.get('title')}"
            for index, issue in enumerate(open_issues, start=1)
        ]
        sections.append("\n".join(lines))

    return sections


def _live_analysis_sections(live: dict[str, Any]) -> list[str]:
    sections: list[str] = []

    stack = live.get("tech_stack") or {}
    stack_lines = [
        f"{label}: {', '.join(stack[key])}"
        for key, label in (
            ("frameworks", "Frameworks"),
            ("languages", "Languages"),
            ("tools", "Tools"),
            ("databases", "Databases"),
        )
        if stack.get(key)
    ]
    if stack_lines:
        sections.append("DETECTED TECH STACK:\n" + "\n".join(stack_lines))

    structure = live.get("structure")
    if structure:
        lines = [
            "REPOSITORY STRUCTURE ANALYSIS:",
            f"- Total Files: {structure['structure']['total_files']}",
            f"- Architecture: {structure['patterns']['architectural_pattern']}",
            f"- Folder Structure: {structure['patterns']['folder_structure']}",
        ]
        important = structure.get("important_files") or []
        if important:
            lines.append("Important Files:")
            lines += [
                f"{index}. {f['path']} ({f['reason']})"
                for index, f in enumerate(important[:5], start=1)
            ]
        sections.append("\n".join(lines))

    quality = live.get("quality")
    if quality:
        lines = [
            "CODE QUALITY ASSESSMENT:",
            f"- Overall Score: {quality['overall_score']}/100",
            f"- Documentation Score: {quality['documentation_score']}/100",
            f"- Activity Score: {quality['activity_score']}/100",
            f"- Maintenance Score: {quality['maintenance_score']}/100",
        ]
        recommendations = quality.get("recommendations") or []
        if recommendations:
            lines.append("Recommendations:")
            lines += [
                f"{index}. {rec}"
                for index, rec in enumerate(recommendations[:3], start=1)
            ]
        sections.append("\n".join(lines))

    return sections


def build_prompt(
    message: str,
    repository: Optional[Repository],
    analysis: Optional[dict[str, Any]] = None,
    history: Optional[list[Message]] = None,
    live: Optional[dict[str, Any]] = None,
) -> str:
    """
    Assemble the user prompt for a chat turn.

    Args:
        message: The user's question
        repository: Repository being discussed, if any
        analysis: Cached full analysis for the repository
        history: Recent messages, oldest first
        live: Freshly fetched GitHub data and tool output (streaming only)

    Returns:
        Prompt text with USER QUESTION, REPOSITORY CONTEXT and INSTRUCTIONS
    """
    parts = [f"USER QUESTION: {message}", "REPOSITORY CONTEXT:"]

    if repository is not None:
        updated = repository.updated_at.date().isoformat() if repository.updated_at else "Unknown"
        parts[-1] += (
            f"\nRepository: {repository.full_name}"
            f"\nDescription: {repository.description or 'No description available'}"
            f"\nPrimary Language: {repository.language or 'Not specified'}"
            f"\nStars: {repository.stars or 0} | Forks: {repository.forks or 0}"
            f" | Issues: {repository.open_issues or 0}"
            f"\nLast Updated: {updated}"
        )
        if repository.tech_stack:
            parts[-1] += f"\nTech Stack: {json.dumps(repository.tech_stack, indent=2)}"

    if live:
        parts += _github_sections(live.get("github_data") or {})
        parts += _live_analysis_sections(live)

    if analysis:
        insights = (analysis.get("structure_analysis") or {}).get("insights") or []
        recommendations = (
            (analysis.get("quality_assessment") or {}).get("recommendations") or []
        )
        parts.append(
            "Detailed Analysis Available: Yes"
            f"\n- Structure Analysis: {json.dumps(insights, indent=2)}"
            f"\n- Quality Assessment: {json.dumps(recommendations, indent=2)}"
        )

    if repository is not None and repository.analysis_summary:
        parts.append(f"Previous Analysis: {repository.analysis_summary}")

    if history:
        lines = ["Recent Conversation History:"]
        for msg in history[-5:]:
            content = msg.content[:200] + ("..." if len(msg.content) > 200 else "")
            lines.append(f"{msg.role}: {content}")
        parts.append("\n".join(lines))

    parts.append(CHAT_INSTRUCTIONS)
    parts.append(
        "Please provide a comprehensive, well-formatted response to the user's question."
    )
    return "\n\n".join(parts)


class ChatAssistant:
    """Conversational assistant scoped to one repository."""

    def __init__(
        self,
        session: Session,
        llm: Optional[LLMProvider] = None,
        github: Optional[GitHubClient] = None,
    ):
        self.session = session
        self.llm = llm
        self.github = github
        self.config = AGENT_CONFIGS["chat_assistant"]
        self.repositories = RepositoryRepository(session)
        self.conversations = ConversationRepository(session)
        self.messages = MessageRepository(session)
        self.cache = AnalysisCacheRepository(session)

    def _provider(self) -> LLMProvider:
        if self.llm is None:
            self.llm = get_default_provider()
        return self.llm

    def _load_context(
        self, repository_id: Optional[str], conversation_id: Optional[str]
    ) -> tuple[Optional[Repository], Optional[dict[str, Any]], list[Message], Optional[Conversation]]:
        repository = self.repositories.get(repository_id) if repository_id else None
        analysis = None
        if repository is not None:
            analysis = self.cache.get_valid(repository.id, "full_analysis")

        conversation = None
        history: list[Message] = []
        if conversation_id:
            if coerce_uuid(conversation_id) is None:
                logger.warning(
                    "Invalid conversation ID format: %s. Proceeding without history.",
                    conversation_id,
                )
            else:
                conversation = self.conversations.get(conversation_id)
                if conversation is not None:
                    history = self.messages.recent_history(conversation.id, limit=10)
        return repository, analysis, history, conversation

    def _live_context(self, repository: Repository) -> Optional[dict[str, Any]]:
        if self.github is None and not settings.github_token:
            return None
        details = ("files", "commits", "issues", "pulls", "languages")
        try:
            owner, repo = parse_github_url(repository.html_url)
            if self.github is not None:
                data = fetch_repository_data(self.github, owner, repo, details)
            else:
                with GitHubClient() as github:
                    data = fetch_repository_data(github, owner, repo, details)
        except (ValueError, GitHubAPIError) as e:
            logger.warning("GitHub data fetch failed for chat: %s", e)
            return None

        files = data.get("files") or []
        contents = data.get("file_contents") or {}
        return {
            "github_data": data,
            "tech_stack": detect_tech_stack(files, contents),
            "structure": analyze_files(files, contents),
            "quality": assess_code_quality(
                {
                    "stargazers_count": repository.stars,
                    "forks_count": repository.forks,
                    "open_issues_count": repository.open_issues,
                    "description": repository.description,
                },
                files,
                contents,
                data.get("commits") or [],
                data.get("issues") or [],
                data.get("pull_requests") or [],
            ),
        }

    def _persist(
        self,
        message: str,
        reply: str,
        repository: Optional[Repository],
        conversation: Optional[Conversation],
        streaming: bool = False,
    ) -> Optional[Conversation]:
        if conversation is None and repository is not None:
            conversation = self.conversations.create(
                user_id=get_single_user_id(),
                repository_id=repository.id,
                title=f"Chat about {repository.name}",
                summary=message[:100],
                context={
                    "focus_areas": ["general"],
                    "current_task": "chat",
                    "relevant_files": [],
                    "key_concepts": [],
                },
            )
        if conversation is None:
            return None

        sources = [str(repository.id)] if repository is not None else []
        self.messages.add(
            conversation.id,
            "user",
            message,
            {"agent_type": "chat_assistant", "sources": sources},
            estimate_tokens(message),
        )
        assistant_meta: dict[str, Any] = {"agent_type": "chat_assistant", "sources": sources}
        if streaming:
            assistant_meta["streaming"] = True
        self.messages.add(
            conversation.id, "assistant", reply, assistant_meta, estimate_tokens(reply)
        )
        return conversation

    def chat(
        self,
        message: str,
        repository_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Answer one message.

        Args:
            message: User message
            repository_id: Repository the conversation is about
            conversation_id: Existing conversation to continue
            temperature: Sampling temperature override

        Returns:
            {success, response, conversation_id, execution_time, steps}
        """
        start = time.time()
        repository, analysis, history, conversation = self._load_context(
            repository_id, conversation_id
        )
        prompt = build_prompt(message, repository, analysis, history)

        try:
            response = self._provider().generate(
                "chat",
                system_prompt=self.config.system_prompt,
                user_prompt=prompt,
                max_tokens=settings.llm_max_tokens,
                temperature=(
                    self.config.temperature if temperature is None else temperature
                ),
            )
            reply = response.content or APOLOGY
        except Exception as e:
            logger.warning("Chat LLM call failed, using fallback: %s", e)
            reply = fallback_response(repository)

        conversation = self._persist(message, reply, repository, conversation)
        return {
            "success": True,
            "response": reply,
            "conversation_id": str(conversation.id) if conversation else None,
            "execution_time": int((time.time() - start) * 1000),
            "steps": 5,
        }

    def stream(
        self,
        message: str,
        repository_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Answer one message incrementally.

        Yields events {"type", "data"} in order: status, chunk..., then
        conversation_id (when persisted) and complete. Any failure yields a
        single error event and ends the stream.
        """
        try:
            repository, analysis, history, conversation = self._load_context(
                repository_id, conversation_id
            )
            live = None
            if repository is not None:
                yield {"type": "status", "data": "Analyzing repository..."}
                live = self._live_context(repository)

            prompt = build_prompt(message, repository, analysis, history, live=live)
            yield {"type": "status", "data": "Generating response..."}

            provider = self._provider()
            full_response = ""
            for chunk in provider.stream(
                self.config.system_prompt,
                prompt,
                max_tokens=settings.llm_max_tokens,
                temperature=self.config.temperature,
            ):
                if chunk:
                    full_response += chunk
                    yield {"type": "chunk", "data": chunk}
        except Exception as e:
            logger.exception("Streaming chat failed: %s", e)
            yield {"type": "error", "data": STREAM_ERROR}
            return

        try:
            conversation = self._persist(
                message, full_response, repository, conversation, streaming=True
            )
        except Exception as e:
            logger.exception("Error saving conversation: %s", e)
            yield {"type": "error", "data": "Failed to save conversation"}
            return

        if conversation is not None:
            yield {"type": "conversation_id", "data": str(conversation.id)}
        yield {"type": "complete", "data": "Response complete"}
