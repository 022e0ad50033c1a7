"""End-to-end drafting and publishing workflow."""

from typing import Any, Dict, Optional

from ..core.exceptions import MCPClientError, TransportError, WorkflowError
from ..core.interfaces import IGenerationClient
from ..core.models import ConversationMessage, WorkflowReport
from ..utils.logger import get_logger
from .sse_client import MCPSSEClient, tool_text

logger = get_logger(__name__)


class PostWorkflow:
    """
    Drives one post from topic to publication through the MCP server.

    Order: refresh the cache, render the prompt, generate the text and
    publish it. Any failed step stops the run; the connection is always
    closed afterwards.
    """

    def __init__(
        self,
        client: MCPSSEClient,
        generator: IGenerationClient,
        fetch_tool: str = "fetchAndCacheTweets",
        prompt_name: str = "generate-post",
        publish_tool: str = "postToX",
    ):
        self.client = client
        self.generator = generator
        self.fetch_tool = fetch_tool
        self.prompt_name = prompt_name
        self.publish_tool = publish_tool

    async def run(self, topic: str) -> WorkflowReport:
        """
        Run the workflow for ``topic``.

        Raises:
            WorkflowError: Naming the step that failed
        """
        report = WorkflowReport(topic=topic)
        step = "connect"

        try:
            await self.client.connect()

            tools = await self.client.list_tools()
            report.available_tools = [tool["name"] for tool in tools]
            logger.info(f"Available tools: {', '.join(report.available_tools)}")

            step = "fetchAndCache"
            result = await self.client.call_tool(self.fetch_tool, {})
            report.cache_message = self._checked(step, result)
            report.steps.append(step)
            logger.info(f"Cache step: {report.cache_message}")

            step = "generatePost"
            prompt = await self.client.get_prompt(self.prompt_name, {"topic": topic})
            messages = [ConversationMessage.from_mcp(m) for m in prompt.get("messages", [])]
            report.steps.append(step)

            step = "generate"
            generation = await self.generator.generate(messages)
            if not generation.ok:
                raise WorkflowError(step, generation.reason or generation.text)
            text = generation.text.strip()
            if not text:
                raise WorkflowError(step, "Generated text is empty")
            report.generated_text = text
            report.steps.append(step)
            logger.info(f"Generated post: {text}")

            step = "publishPost"
            result = await self.client.call_tool(self.publish_tool, {"content": text})
            report.publish_message = self._checked(step, result)
            report.steps.append(step)
            logger.info(f"Publish step: {report.publish_message}")

        except (TransportError, MCPClientError) as e:
            raise WorkflowError(step, str(e)) from e
        finally:
            await self.client.close()

        return report

    @staticmethod
    def _checked(step: str, result: Optional[Dict[str, Any]]) -> str:
        text = tool_text(result or {})
        if not result or result.get("isError"):
            raise WorkflowError(step, text or "Tool reported an error")
        return text
