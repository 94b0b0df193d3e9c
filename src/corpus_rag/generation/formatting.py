"""Markdown rendering of a multi-hop result for chat display."""

from corpus_rag.generation.prompts import prompt_language
from corpus_rag.models.result import MultiHopResult

_LABELS = {
    "en": {
        "title": "## 🧠 Multi-Hop Analysis",
        "hybrid": " (Hybrid Mode 💡)",
        "note": "💡 **Note:** This analysis combines document information with general knowledge.",
        "summary": "📋 View Reasoning Steps ({count} steps)",
        "step": "### Step {number}: {question}",
        "answer": "Answer",
        "sources": "Sources",
        "confidence": "Confidence",
        "general": "General Knowledge",
        "final": "## 📝 Final Answer",
        "stats": "📊 **Statistics:**",
        "stat_steps": "- Analysis steps: {value}",
        "stat_documents": "- Documents used: {value}",
        "stat_evidence": "- Evidence sources: {value}",
        "stat_general": "- General knowledge used: Yes 💡",
        "stat_confidence": "- Overall confidence: {value}",
    },
    "ar": {
        "title": "## 🧠 تحليل متعدد الخطوات",
        "hybrid": " (وضع هجين 💡)",
        "note": "💡 **ملاحظة:** استخدم هذا التحليل معلومات من المستندات والمعرفة العامة.",
        "summary": "📋 عرض خطوات التحليل ({count} خطوات)",
        "step": "### خطوة {number}: {question}",
        "answer": "الجواب",
        "sources": "المصادر",
        "confidence": "الثقة",
        "general": "معرفة عامة",
        "final": "## 📝 الإجابة النهائية",
        "stats": "📊 **الإحصائيات:**",
        "stat_steps": "- خطوات التحليل: {value}",
        "stat_documents": "- مستندات مستخدمة: {value}",
        "stat_evidence": "- مصادر الأدلة: {value}",
        "stat_general": "- استخدام المعرفة العامة: نعم 💡",
        "stat_confidence": "- الثقة الإجمالية: {value}",
    },
}


def _percent(value: float) -> str:
    return f"{value * 100:.1f}%"


def format_multi_hop_response(result: MultiHopResult, language: str = "en") -> str:
    """
    Render a multi-hop result as Markdown.

    Layout: header (with a hybrid marker when general knowledge was used),
    a collapsible <details> block with every reasoning step, the final
    answer, and a statistics footer.
    """
    labels = _LABELS[prompt_language(language)]
    lines: list[str] = []

    header = labels["title"]
    if result.strategy == "hybrid-multi-hop":
        header += labels["hybrid"]
    lines += [header, ""]

    if result.used_general_knowledge:
        lines += [labels["note"], ""]

    lines += ["<details>", f"<summary>{labels['summary'].format(count=len(result.steps))}</summary>", ""]

    for step in result.steps:
        title = labels["step"].format(number=step.step_number, question=step.question)
        if step.used_general_knowledge:
            title += " 💡"
        sources = labels["general"] if step.used_general_knowledge else ", ".join(step.document_sources[:3])
        lines += [
            title, "",
            f"**{labels['answer']}:** {step.answer}", "",
            f"**{labels['sources']}:** {sources}", "",
            f"**{labels['confidence']}:** {_percent(step.confidence)}", "",
            "---", "",
        ]

    lines += ["</details>", "", labels["final"], "", result.final_answer, "", "---", ""]

    lines.append(labels["stats"])
    lines.append(labels["stat_steps"].format(value=len(result.steps)))
    lines.append(labels["stat_documents"].format(value=result.total_documents_used))
    lines.append(labels["stat_evidence"].format(value=len(result.evidence_chain)))
    if result.used_general_knowledge:
        lines.append(labels["stat_general"])
    lines.append(labels["stat_confidence"].format(value=_percent(result.confidence_score)))

    return "\n".join(lines) + "\n"
