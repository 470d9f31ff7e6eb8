"""
Categorizador de transações por palavras-chave
Atribui categoria de gasto e confiança a descrições em texto livre
"""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Tuple

from config import (
    CATEGORIES,
    CATEGORY_CONFIDENCE_CAP,
    CATEGORY_CONFIDENCE_FLOOR,
    MANUAL_REVIEW_THRESHOLD
)
from utils.logger import get_logger, log_manual_review

logger = get_logger(__name__)

FALLBACK_CATEGORY = "other"


# === Palavras-chave por categoria (ordem de declaração desempata) ===

KEYWORD_RULES = {
    "housing": [
        "rent", "mortgage", "apartment", "house", "landlord", "lease",
        "property", "real estate", "housing", "accommodation", "home",
        "condo", "townhouse", "duplex", "studio"
    ],
    "food": [
        "restaurant", "food", "grocery", "supermarket", "dining", "cafe",
        "coffee", "lunch", "dinner", "breakfast", "pizza", "burger",
        "mcdonalds", "starbucks", "subway", "kfc", "dominos", "chipotle",
        "panda express", "taco bell", "wendys", "burger king", "pizza hut",
        "sushi", "chinese", "mexican", "italian", "thai", "indian"
    ],
    "transportation": [
        "gas", "fuel", "gasoline", "uber", "lyft", "taxi", "bus",
        "train", "metro", "subway", "parking", "toll", "car",
        "vehicle", "transport", "commute", "ride", "airline", "flight",
        "rental car", "zipcar", "bike", "scooter", "public transport"
    ],
    "utilities": [
        "electric", "electricity", "water", "internet", "phone",
        "cable", "utility", "power", "gas bill", "wifi",
        "telecom", "broadband", "mobile", "cell phone", "landline",
        "sewer", "trash", "garbage", "heating", "cooling"
    ],
    "healthcare": [
        "doctor", "hospital", "medical", "pharmacy", "drug",
        "medicine", "health", "clinic", "dentist", "therapy",
        "insurance", "prescription", "cvs", "walgreens", "rite aid",
        "urgent care", "emergency", "surgery", "xray", "lab"
    ],
    "entertainment": [
        "movie", "cinema", "netflix", "spotify", "subscription",
        "game", "entertainment", "theater", "concert", "show",
        "amazon prime", "hulu", "disney", "youtube", "twitch",
        "gaming", "sports", "fitness", "gym", "yoga"
    ],
    "shopping": [
        "amazon", "walmart", "target", "store", "shop", "mall",
        "clothes", "fashion", "retail", "purchase", "buy",
        "ebay", "etsy", "online", "shopping", "costco", "sams club",
        "best buy", "home depot", "lowes", "nike", "adidas"
    ],
}

# Exemplos rotulados usados para avaliar as regras
TRAINING_EXAMPLES = [
    ("Monthly rent payment", "housing"),
    ("Mortgage payment", "housing"),
    ("Apartment rent", "housing"),
    ("Property tax", "housing"),
    ("Home insurance", "housing"),
    ("Landlord payment", "housing"),
    ("Housing association fee", "housing"),
    ("Grocery shopping at Walmart", "food"),
    ("Dinner at restaurant", "food"),
    ("Coffee at Starbucks", "food"),
    ("Lunch at McDonald's", "food"),
    ("Pizza delivery", "food"),
    ("Breakfast at diner", "food"),
    ("Supermarket groceries", "food"),
    ("Chipotle burrito", "food"),
    ("Subway sandwich", "food"),
    ("Gas station fill up", "transportation"),
    ("Uber ride to airport", "transportation"),
    ("Parking fee", "transportation"),
    ("Bus ticket", "transportation"),
    ("Train fare", "transportation"),
    ("Car maintenance", "transportation"),
    ("Lyft ride", "transportation"),
    ("Airline ticket", "transportation"),
    ("Electric bill", "utilities"),
    ("Internet service", "utilities"),
    ("Phone bill", "utilities"),
    ("Water bill", "utilities"),
    ("Cable TV", "utilities"),
    ("Gas utility bill", "utilities"),
    ("Mobile phone plan", "utilities"),
    ("Doctor visit", "healthcare"),
    ("Pharmacy prescription", "healthcare"),
    ("Dental checkup", "healthcare"),
    ("Medical insurance", "healthcare"),
    ("Hospital bill", "healthcare"),
    ("CVS pharmacy", "healthcare"),
    ("Walgreens prescription", "healthcare"),
    ("Netflix subscription", "entertainment"),
    ("Movie tickets", "entertainment"),
    ("Spotify premium", "entertainment"),
    ("Video game purchase", "entertainment"),
    ("Concert tickets", "entertainment"),
    ("Amazon Prime subscription", "entertainment"),
    ("Gym membership", "entertainment"),
    ("Theater show", "entertainment"),
    ("Amazon purchase", "shopping"),
    ("Clothing at Target", "shopping"),
    ("Online shopping", "shopping"),
    ("Electronics store", "shopping"),
    ("Bookstore", "shopping"),
    ("Costco membership", "shopping"),
    ("Best Buy electronics", "shopping"),
    ("Nike shoes", "shopping"),
]


def needs_manual_review(confidence: float) -> bool:
    """Categorizações abaixo de 0.7 de confiança vão para revisão manual"""
    return confidence < MANUAL_REVIEW_THRESHOLD


@dataclass(frozen=True)
class CategoryPrediction:
    """Resultado de uma categorização (nunca reaproveitado entre chamadas)"""
    category: str
    confidence: float
    scores: Dict[str, float] = field(default_factory=dict)

    @property
    def needs_review(self) -> bool:
        return needs_manual_review(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "confidence": self.confidence,
            "scores": dict(self.scores),
            "needs_review": self.needs_review
        }


class CategorizationScorer:
    """Categorizador de transações baseado em sobreposição de palavras-chave"""

    VERSION = "1.0.0"

    def __init__(self):
        self.categories = list(CATEGORIES)
        self.patterns = {c: list(KEYWORD_RULES.get(c, [])) for c in self.categories}
        self.training_data: List[Tuple[str, str]] = list(TRAINING_EXAMPLES)

    @staticmethod
    def tokenize(description: str) -> List[str]:
        """Minúsculas separadas por espaço em branco"""
        return (description or "").lower().split()

    def score_category(self, tokens: List[str], category: str) -> float:
        """
        Pares (token, palavra-chave) em que um contém o outro,
        divididos pela quantidade de tokens
        """
        if not tokens:
            return 0.0

        keywords = self.patterns.get(category, [])
        matches = sum(
            1
            for token in tokens
            for keyword in keywords
            if token in keyword or keyword in token
        )
        return matches / len(tokens)

    def predict_category(self, description: str) -> CategoryPrediction:
        """
        Categoriza uma descrição

        Args:
            description: Descrição da transação

        Returns:
            CategoryPrediction com categoria, confiança e scores por categoria
        """
        tokens = self.tokenize(description)
        scores = {category: self.score_category(tokens, category) for category in self.categories}

        predicted = FALLBACK_CATEGORY
        max_score = 0.0
        for category in self.categories:
            if scores[category] > max_score:
                max_score = scores[category]
                predicted = category

        total = sum(scores.values())
        confidence = max_score / total if total > 0 else CATEGORY_CONFIDENCE_FLOOR
        prediction = CategoryPrediction(
            category=predicted,
            confidence=min(confidence, CATEGORY_CONFIDENCE_CAP),
            scores=scores
        )

        if prediction.needs_review:
            log_manual_review(logger, description, prediction.category, prediction.confidence)

        return prediction

    def predict_batch(self, descriptions: List[str]) -> List[CategoryPrediction]:
        return [self.predict_category(d) for d in descriptions]

    def needs_manual_review(self, confidence: float) -> bool:
        return needs_manual_review(confidence)

    def add_training_data(self, description: str, category: str) -> None:
        """Adiciona um exemplo rotulado (usado por `evaluate`)"""
        if category not in self.categories:
            logger.warning(f"Categoria desconhecida ignorada: {category}")
            return
        self.training_data.append((description, category))

    def evaluate(self) -> Dict[str, Any]:
        """
        Avalia as regras sobre os exemplos rotulados

        Returns:
            Acurácia e exemplos que precisariam de revisão
        """
        if not self.training_data:
            return {"accuracy": 0.0, "total": 0, "needs_review": 0}

        predictions = self.predict_batch([d for d, _ in self.training_data])
        correct = sum(
            1 for p, (_, expected) in zip(predictions, self.training_data)
            if p.category == expected
        )
        accuracy = correct / len(self.training_data)
        logger.info(f"Avaliação do categorizador: acurácia {accuracy:.2%}")

        return {
            "accuracy": accuracy,
            "total": len(self.training_data),
            "needs_review": sum(1 for p in predictions if p.needs_review)
        }

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "categories": self.categories,
            "training_data_size": len(self.training_data),
            "patterns": len(KEYWORD_RULES),
            "version": self.VERSION,
            "confidence_threshold": MANUAL_REVIEW_THRESHOLD
        }


def get_category_suggestions(partial_text: str, limit: int = 5) -> List[str]:
    """
    Retorna sugestões de categorias baseadas em texto parcial

    Args:
        partial_text: Texto parcial para buscar sugestões
        limit: Número máximo de sugestões

    Returns:
        Lista de categorias sugeridas
    """
    text = partial_text.lower().strip()
    suggestions = []

    if text:
        for category, keywords in KEYWORD_RULES.items():
            for kw in keywords:
                if text in kw or kw in text:
                    suggestions.append(category)
                    break

    return suggestions[:limit] if suggestions else [FALLBACK_CATEGORY]
