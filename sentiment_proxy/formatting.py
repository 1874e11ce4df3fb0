from sentiment_proxy.client import (
    AnalyzeSentimentResult,
    MinedOpinion,
    SentenceSentiment,
    SentimentConfidenceScores,
)
from sentiment_proxy.schemas import (
    AnalysisResult,
    Assessment,
    ConfidenceScores,
    Opinion,
    OpinionTarget,
    Sentence,
)


def format_scores(scores: SentimentConfidenceScores) -> ConfidenceScores:
    return ConfidenceScores(
        positive=scores.positive, neutral=scores.neutral, negative=scores.negative
    )


def format_opinion(opinion: MinedOpinion) -> Opinion:
    return Opinion(
        target=OpinionTarget(
            text=opinion.target.text,
            sentiment=opinion.target.sentiment,
            confidence_scores=format_scores(opinion.target.confidence_scores),
        ),
        assessments=[
            Assessment(text=assessment.text, sentiment=assessment.sentiment)
            for assessment in opinion.assessments
        ],
    )


def format_sentence(sentence: SentenceSentiment) -> Sentence:
    return Sentence(
        text=sentence.text,
        sentiment=sentence.sentiment,
        confidence_scores=format_scores(sentence.confidence_scores),
        opinions=[format_opinion(opinion) for opinion in sentence.opinions or []],
    )


def format_result(document_text: str, result: AnalyzeSentimentResult) -> AnalysisResult:
    """Reshape a service result into the display contract.

    ``document_text`` is echoed back as received rather than rebuilt from the
    sentences, which may drop whitespace between them.
    """
    return AnalysisResult(
        document_text=document_text,
        overall_sentiment=result.sentiment,
        confidence_scores=format_scores(result.confidence_scores),
        sentences=[format_sentence(sentence) for sentence in result.sentences],
    )
