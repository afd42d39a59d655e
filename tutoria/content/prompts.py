"""
Prompt templates for content generation.

All prompts target Brazilian elementary school (Ensino Fundamental) and
embed a summary of the BNCC curriculum as reference material.
"""

from __future__ import annotations

import json
from typing import Any

# =============================================================================
# Reference material
# =============================================================================

CURRICULUM_CONTENT = """
**Resumo do Roteiro Pedagógico Baseado na BNCC para Ensino Fundamental**

A Base Nacional Comum Curricular (BNCC) define as aprendizagens essenciais que todos os alunos devem desenvolver, com foco na educação integral e em 10 competências gerais.

**Áreas do Conhecimento e Componentes Curriculares:**

1.  **Linguagens**:
    *   **Português**: alfabetização (1º-2º ano), leitura, escrita, oralidade e análise linguística/semiótica. Decodificação, compreensão de textos, produção textual, ortografia e pontuação. Nos anos finais (6º-9º), gêneros textuais diversos, figuras de linguagem e argumentação.
    *   **Arte**: artes visuais, dança, música e teatro.
    *   **Educação Física**: jogos, esportes, danças e lutas.
    *   **Língua Inglesa**: obrigatória a partir do 6º ano.

2.  **Matemática**:
    *   Raciocínio lógico e resolução de problemas.
    *   **Números**: sistema de numeração decimal, as quatro operações, frações, números racionais.
    *   **Álgebra**: (anos finais) expressões algébricas, equações de 1º e 2º grau.
    *   **Geometria**: figuras geométricas, grandezas e medidas (comprimento, área, volume, tempo).
    *   **Probabilidade e Estatística**: gráficos, tabelas e noções de probabilidade.

3.  **Ciências da Natureza**:
    *   **Matéria e Energia**: propriedades dos materiais, transformações físicas e químicas, fontes de energia.
    *   **Vida e Evolução**: seres vivos, corpo humano, saúde, ecossistemas.
    *   **Terra e Universo**: Sistema Solar, movimentos da Terra, ciclo da água.

4.  **Ciências Humanas**:
    *   **Geografia**: espaço e relações sociedade-natureza, paisagens, mapas, população brasileira, dinâmicas urbanas e rurais, continentes.
    *   **História**: identidade pessoal e familiar, marcos históricos, povos indígenas, colonização do Brasil, República, eventos mundiais.

5.  **Ensino Religioso**: respeito à diversidade de tradições religiosas e filosofias de vida.

**Lógica e Raciocínio**: habilidades transversais de observar, identificar padrões, resolver problemas não convencionais, argumentar com base em evidências e pensar criticamente.
"""

# =============================================================================
# Response schemas (Gemini responseSchema format)
# =============================================================================

QUESTION_LIST_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "question": {"type": "STRING"},
            "options": {"type": "ARRAY", "items": {"type": "STRING"}},
            "correctAnswer": {"type": "STRING"},
            "subject": {"type": "STRING"},
        },
        "required": ["question", "options", "correctAnswer", "subject"],
    },
}

INSIGHTS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "lessonSuggestions": {"type": "ARRAY", "items": {"type": "STRING"}},
        "hubData": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "subject": {"type": "STRING"},
                    "level": {"type": "STRING"},
                    "summary": {"type": "STRING"},
                    "suggestions": {"type": "STRING"},
                },
                "required": ["subject", "level", "summary", "suggestions"],
            },
        },
    },
    "required": ["lessonSuggestions", "hubData"],
}

# =============================================================================
# Templates
# =============================================================================

PLACEMENT_TEST_PROMPT = """
Você é um especialista em avaliação educacional para o Ensino Fundamental no Brasil. Com base no resumo da BNCC abaixo, gere uma avaliação de nivelamento com 12 questões de múltipla escolha.

**Informações do Aluno:**
- Série/Ano: {grade}

**Instruções:**
1.  Crie 2 questões para cada matéria: {subjects}.
2.  As questões devem representar conhecimentos fundamentais esperados para um aluno do **{grade}**, com complexidade adequada.
3.  Cada questão tem 4 opções de resposta e apenas uma correta; "correctAnswer" deve repetir exatamente o texto da opção correta.
4.  No campo "subject", coloque o nome da matéria correspondente.

**Conteúdo de Referência (Resumo da BNCC):**
---
{curriculum}
---

O formato de saída deve ser um JSON Array, sem nenhum texto adicional."""

ACTIVITY_PROMPT = """
Você é um tutor de IA criando uma atividade educacional.

**Informações do Aluno:**
Série/Ano: {grade}

**Tópico da Atividade:** {topic}
**Matéria:** {subject}

**Conteúdo de Referência (BNCC):**
---
{curriculum}
---

Gere 3 questões de múltipla escolha sobre o tópico acima, adequadas à série do aluno. Cada questão deve ter 4 opções e "correctAnswer" deve repetir exatamente o texto da opção correta. No campo "subject", use o valor "{subject}".

O formato de saída deve ser um JSON Array, sem nenhum texto adicional."""

INSIGHTS_PROMPT = """
Você é um psicopedagogo e analista de dados educacionais. Analise o desempenho de um aluno e forneça insights para o tutor.

**Dados do Aluno:**
- Nome: {name}
- Série/Ano: {grade}
- Resultados do Teste de Nivelamento: {placement}

**Desempenho nas Atividades:**
{performance}

**Sua Tarefa:**
Com base em TODOS os dados acima (nivelamento e atividades), gere um objeto JSON com duas chaves: "lessonSuggestions" e "hubData".

1.  **lessonSuggestions**: um array de 3 strings, cada uma uma sugestão curta e acionável de tópico de aula. Ex: "Revisar operações com frações."
2.  **hubData**: um array com um objeto para cada matéria principal (Português, Matemática, Ciências, História, Geografia), com as chaves:
    *   **subject**: o nome da matéria.
    *   **level**: o nível de proficiência ({levels}), baseado em uma análise holística.
    *   **summary**: resumo de 1-2 frases das principais dificuldades observadas, ou dos pontos fortes se não houver dificuldades.
    *   **suggestions**: sugestão clara de temas e tipos de exercício para suprir as dificuldades.
"""

INSTRUCTIONS_PROMPT = """
Você é um assistente de IA para tutores, criando uma atividade educacional personalizada.

**Informações da Atividade:**
- Título: {title}
- Série/Ano do Aluno: {grade}
- Instruções do Tutor: "{instructions}"

**Conteúdo de Referência (BNCC):**
---
{curriculum}
---
"""

SOURCE_TEXT_SECTION = """
**Texto extraído do arquivo fornecido pelo tutor (use como base principal):**
---
{source_text}
---
"""

INSTRUCTIONS_TASK = """
**Sua Tarefa:**
Com base nas instruções do tutor e no texto do arquivo (se fornecido), gere até 5 questões de múltipla escolha.
- Se as instruções já contiverem perguntas e opções formatadas, apenas converta-as para o formato JSON.
- Caso contrário, CRIE as perguntas com base no conteúdo e nas instruções.
- As questões devem ser claras e adequadas à série do aluno.
- Cada questão deve ter 4 opções de resposta, com apenas uma correta.
- O campo "subject" deve ser derivado do título ou das instruções (ex: "Português", "Matemática", "História"). Se não for claro, use "{custom_subject}".

O formato de saída deve ser um JSON Array, sem nenhum texto adicional."""


def build_placement_prompt(grade: str, subjects: list[str]) -> str:
    return PLACEMENT_TEST_PROMPT.format(
        grade=grade,
        subjects=", ".join(subjects),
        curriculum=CURRICULUM_CONTENT,
    )


def build_activity_prompt(topic: str, subject: str, grade: str) -> str:
    return ACTIVITY_PROMPT.format(
        topic=topic,
        subject=subject,
        grade=grade,
        curriculum=CURRICULUM_CONTENT,
    )


def build_insights_prompt(
    name: str,
    grade: str,
    placement: dict[str, int] | None,
    performance: list[dict[str, Any]],
    levels: list[str],
) -> str:
    return INSIGHTS_PROMPT.format(
        name=name,
        grade=grade,
        placement=json.dumps(placement, ensure_ascii=False) if placement else "Não concluído",
        performance=json.dumps(performance, ensure_ascii=False, indent=2),
        levels=", ".join(f"'{level}'" for level in levels),
    )


def build_instructions_prompt(
    title: str,
    instructions: str,
    grade: str,
    source_text: str | None,
    custom_subject: str,
) -> str:
    prompt = INSTRUCTIONS_PROMPT.format(
        title=title,
        grade=grade,
        instructions=instructions,
        curriculum=CURRICULUM_CONTENT,
    )
    if source_text:
        prompt += SOURCE_TEXT_SECTION.format(source_text=source_text)
    return prompt + INSTRUCTIONS_TASK.format(custom_subject=custom_subject)
