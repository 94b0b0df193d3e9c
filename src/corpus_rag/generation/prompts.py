"""
Prompt templates used by the engine.

Everything the engine asks a model lives here as a LangChain
PromptTemplate, so the wording can be reviewed in one place. Prompts that
produce user-facing text come in English and Arabic; pick one with
select_prompt(), which falls back to English for any other language.

    prompt = select_prompt(EVIDENCE_ANSWER_PROMPTS, "ar")
    text = prompt.format(context=context, question=question)
"""

from langchain_core.prompts import PromptTemplate

# ---------------------------------------------------------------------------
# Reranking
# ---------------------------------------------------------------------------

RERANK_PROMPT = PromptTemplate(
    input_variables=["query", "count", "chunks", "top_n"],
    template=(
        "You are a search relevance expert. Rank these text chunks by relevance to the query.\n\n"
        'QUERY: "{query}"\n\n'
        "CHUNKS ({count} total):\n"
        "{chunks}\n\n"
        "Return ONLY a single flat JSON array of the top {top_n} chunk indices (just numbers), "
        "ordered from most to least relevant.\n\n"
        "CORRECT format: [5, 2, 10, 1, 8, 14, 3]\n"
        "WRONG format: [[5], [2], [10]]\n\n"
        "Your response (numbers only):"
    ),
)

# ---------------------------------------------------------------------------
# Standard retrieval answer
# ---------------------------------------------------------------------------

CONTEXT_ANSWER_PROMPTS = {
    "en": PromptTemplate(
        input_variables=["context", "question"],
        template=(
            "Answer the question based on the following excerpts.\n\n"
            "{context}\n\n"
            "Question: {question}\n\n"
            "Instructions:\n"
            "- Base your answer on the provided excerpts.\n"
            "- If the excerpts don't contain enough information, say so.\n"
            "- Cite the document and page you used, e.g. (Document 1, Page 12).\n\n"
            "Answer:"
        ),
    ),
    "ar": PromptTemplate(
        input_variables=["context", "question"],
        template=(
            "أجب على السؤال بناءً على المقتطفات التالية.\n\n"
            "{context}\n\n"
            "السؤال: {question}\n\n"
            "التعليمات:\n"
            "- اعتمد في إجابتك على المقتطفات المقدمة.\n"
            "- إذا لم تحتوِ المقتطفات على معلومات كافية، فاذكر ذلك.\n"
            "- أشر إلى المستند والصفحة التي استخدمتها، مثل (المستند 1، صفحة 12).\n\n"
            "الجواب:"
        ),
    ),
}

# ---------------------------------------------------------------------------
# Multi-hop: per-hop answers
# ---------------------------------------------------------------------------

GENERAL_KNOWLEDGE_PROMPTS = {
    "en": PromptTemplate(
        input_variables=["question"],
        template=(
            "Answer the following question using your general knowledge. Be accurate and concise.\n\n"
            "Question: {question}\n\n"
            "Answer (2-3 sentences):"
        ),
    ),
    "ar": PromptTemplate(
        input_variables=["question"],
        template=(
            "أجب على السؤال التالي باستخدام معرفتك العامة. كن دقيقاً وموجزاً.\n\n"
            "السؤال: {question}\n\n"
            "الجواب (2-3 جمل):"
        ),
    ),
}

EVIDENCE_ANSWER_PROMPTS = {
    "en": PromptTemplate(
        input_variables=["context", "question"],
        template=(
            "Based on the following evidence, answer the question concisely.\n\n"
            "If evidence is incomplete, you may add information from your general knowledge "
            "and indicate this.\n\n"
            "{context}\n\n"
            "Question: {question}\n\n"
            "Answer (2-3 sentences):"
        ),
    ),
    "ar": PromptTemplate(
        input_variables=["context", "question"],
        template=(
            "بناءً على الأدلة التالية، أجب على السؤال بشكل موجز.\n\n"
            "إذا كانت الأدلة ناقصة، يمكنك إضافة معلومات من معرفتك العامة وأشر إلى ذلك.\n\n"
            "{context}\n\n"
            "السؤال: {question}\n\n"
            "الجواب (2-3 جمل):"
        ),
    ),
}

NEXT_QUESTION_PROMPTS = {
    "en": PromptTemplate(
        input_variables=["partial_answer", "original_question"],
        template=(
            'We have this partial answer: "{partial_answer}"\n\n'
            'To fully answer the original question: "{original_question}"\n\n'
            "What is the next most important sub-question to complete the answer?\n\n"
            "Write ONE clear, specific question:"
        ),
    ),
    "ar": PromptTemplate(
        input_variables=["partial_answer", "original_question"],
        template=(
            'لدينا هذه الإجابة الجزئية: "{partial_answer}"\n\n'
            'للإجابة الكاملة على السؤال الأصلي: "{original_question}"\n\n'
            "ما هو السؤال الفرعي التالي الأكثر أهمية لاستكمال الإجابة؟\n\n"
            "اكتب سؤالاً واحداً فقط، واضحاً ومحدداً:"
        ),
    ),
}

# ---------------------------------------------------------------------------
# Multi-hop: synthesis
# ---------------------------------------------------------------------------

SYNTHESIS_PROMPTS = {
    "en": PromptTemplate(
        input_variables=["question", "reasoning_chain", "note"],
        template=(
            "We performed multi-hop reasoning to answer a complex question.\n\n"
            '**Original Question:** "{question}"\n\n'
            "**Logical Steps:**\n\n"
            "{reasoning_chain}\n\n"
            "---\n\n"
            "{note}"
            "**Your Task:** Synthesize these steps into ONE comprehensive, coherent answer.\n\n"
            "**Answer Requirements:**\n"
            "1. Start with direct summary of main answer\n"
            "2. Integrate document information (if any) with general knowledge\n"
            "3. Clearly mark sections relying on general knowledge with **[Additional Information]**\n"
            "4. Use Markdown formatting (lists, subheadings)\n"
            "5. Cite document sources when quoting\n\n"
            "**Final Comprehensive Answer:**"
        ),
    ),
    "ar": PromptTemplate(
        input_variables=["question", "reasoning_chain", "note"],
        template=(
            "لقد قمنا بعملية استدلال متعددة الخطوات للإجابة على سؤال معقد.\n\n"
            '**السؤال الأصلي:** "{question}"\n\n'
            "**الخطوات المنطقية:**\n\n"
            "{reasoning_chain}\n\n"
            "---\n\n"
            "{note}"
            "**مهمتك:** اجمع هذه الخطوات في إجابة شاملة ومترابطة واحدة.\n\n"
            "**متطلبات الإجابة:**\n"
            "1. ابدأ بملخص مباشر للإجابة الرئيسية\n"
            "2. دمج المعلومات من المستندات (إذا وجدت) مع المعرفة العامة\n"
            "3. وضّح أي أقسام تعتمد على معرفة عامة باستخدام **[معلومات إضافية]**\n"
            "4. استخدم تنسيق Markdown (قوائم، عناوين فرعية)\n"
            "5. أشر إلى المصادر من المستندات عند الاقتباس\n\n"
            "**الإجابة النهائية الشاملة:**"
        ),
    ),
}

GENERAL_KNOWLEDGE_NOTES = {
    "en": "**Important Note:** Some steps used general knowledge (💡) due to insufficient document information.\n\n",
    "ar": "**ملاحظة مهمة:** بعض الخطوات استخدمت معرفة عامة (💡) بسبب نقص المعلومات في المستندات.\n\n",
}

# ---------------------------------------------------------------------------
# Spelling correction
# ---------------------------------------------------------------------------

CORRECTION_PROMPTS = {
    "en": PromptTemplate(
        input_variables=["instruction", "text"],
        template=(
            "Correct spelling errors in the following text. {instruction}\n\n"
            "Original text:\n{text}\n\n"
            "Corrected text (no explanations, just the text):"
        ),
    ),
    "ar": PromptTemplate(
        input_variables=["instruction", "text"],
        template=(
            "صحح الأخطاء الإملائية في النص التالي. {instruction}\n\n"
            "النص الأصلي:\n{text}\n\n"
            "النص المصحح (بدون شرح، فقط النص):"
        ),
    ),
}

CORRECTION_INSTRUCTIONS = {
    "en": {
        True: "Fix all errors.",
        False: "Fix only obvious errors, preserve rare or historical words.",
    },
    "ar": {
        True: "صحح جميع الأخطاء.",
        False: "صحح الأخطاء الواضحة فقط، واحتفظ بالكلمات النادرة أو التاريخية.",
    },
}


def prompt_language(language: str) -> str:
    """'ar' for Arabic, 'en' for everything else (including 'mixed')."""
    return "ar" if language == "ar" else "en"


def select_prompt(prompts: dict, language: str):
    """Pick the Arabic or English entry of a prompt table."""
    return prompts[prompt_language(language)]

INSUFFICIENT_INFORMATION = {
    "en": "Information insufficient to answer this question.",
    "ar": "المعلومات غير كافية للإجابة على هذا السؤال.",
}
