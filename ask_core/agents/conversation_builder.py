"""每一轮发给模型的消息序列构造。

顺序是模型接口的硬性要求：system、user，随后是 assistant 的工具调用轮次，
再按调用顺序为每个工具调用追加一条 tool 消息。
"""

from typing import List, Sequence, Union

from ask_core.domain.models import ChatMessage, Conversation
from ask_core.providers.tool_calls import InlineMarkupToolCalls, StructuredToolCalls
from ask_core.tools.definitions import ToolResult


class ConversationBuilder:
    def __init__(self, system_prompt: str):
        self._system_prompt = system_prompt

    def build_initial(self, question: str) -> Conversation:
        return [
            ChatMessage(role="system", content=self._system_prompt),
            ChatMessage(role="user", content=question),
        ]

    def build_followup(
        self,
        decision: Union[StructuredToolCalls, InlineMarkupToolCalls],
        question: str,
        results: Sequence[ToolResult],
    ) -> Conversation:
        """在首轮消息之后追加 assistant 工具调用轮次与全部工具结果。

        结构化格式回传原始 tool_calls；内联标记格式回传原始标记文本，
        厂商需要看到自己输出的标记。
        """

        messages: List[ChatMessage] = self.build_initial(question)
        if isinstance(decision, StructuredToolCalls):
            messages.append(
                ChatMessage(
                    role="assistant",
                    content=decision.content,
                    tool_calls=[dict(call) for call in decision.raw_tool_calls],
                )
            )
        else:
            messages.append(ChatMessage(role="assistant", content=decision.markup))

        expected_ids = [call.id for call in decision.calls]
        result_ids = [result.call_id for result in results]
        if result_ids != expected_ids:
            raise ValueError(
                f"tool results {result_ids} do not match tool calls {expected_ids}"
            )
        for result in results:
            messages.append(
                ChatMessage(
                    role="tool",
                    content=result.content,
                    tool_call_id=result.call_id,
                    name=result.name,
                )
            )
        return messages
