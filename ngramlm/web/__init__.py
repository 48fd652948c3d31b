"""Flask JSON API over a trained language model. The application object is ngramlm.web.app.app."""
