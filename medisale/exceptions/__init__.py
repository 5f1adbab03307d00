"""Custom exceptions for the MediSale sale engine."""


class SaleError(Exception):
    """Base exception for all application errors."""
    category = 'unknown'

    def __init__(self, message="Une erreur interne est survenue", status_code=500, payload=None, detail=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.detail = detail

    def to_dict(self, include_detail=False):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['category'] = self.category
        rv['status'] = 'error'
        if include_detail and self.detail:
            rv['detail'] = self.detail
        return rv


class ValidationError(SaleError):
    """Submission rejected before any write; carries field-level errors."""
    category = 'validation'

    def __init__(self, message="Données de vente invalides", errors=None):
        self.errors = list(errors or [])
        super().__init__(message, 400, {'errors': self.errors})


class NotFoundError(SaleError):
    """Exception raised when a resource is not found."""
    category = 'not_found'

    def __init__(self, message="Ressource introuvable", payload=None):
        super().__init__(message, 404, payload)


class IdentifierExhaustedError(SaleError):
    """Every invoice number candidate for the timestamp was already taken."""
    category = 'identifier_exhausted'

    def __init__(self, attempts, detail=None):
        self.attempts = attempts
        super().__init__(
            "Impossible d'attribuer un numéro de facture, veuillez réessayer",
            503,
            detail=detail or f'{attempts} tentatives épuisées'
        )


class DuplicateDataError(SaleError):
    """Uniqueness violation reported by the database."""
    category = 'duplicate'

    def __init__(self, detail=None):
        super().__init__('Données en double détectées', 409, detail=detail)


class InvalidReferenceError(SaleError):
    """Foreign-key violation: the client, product or device does not exist."""
    category = 'invalid_reference'

    def __init__(self, detail=None):
        super().__init__('Référence invalide (client ou produit inexistant)', 400, detail=detail)


class MissingFieldsError(SaleError):
    """NOT NULL violation reported by the database."""
    category = 'missing_fields'

    def __init__(self, detail=None):
        super().__init__('Champs obligatoires manquants', 400, detail=detail)


class TransactionFailedError(SaleError):
    """Unclassified failure during the sale transaction."""
    category = 'unknown'

    def __init__(self, detail=None):
        super().__init__('Erreur lors de la création de la vente, veuillez réessayer', 500, detail=detail)


class InvalidTransitionError(SaleError):
    """Dossier status change not allowed by the CNAM workflow."""
    category = 'invalid_transition'

    def __init__(self, current_status, new_status):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f'Transition de statut non autorisée: {current_status} → {new_status}',
            409,
            {'currentStatus': current_status, 'requestedStatus': new_status}
        )
