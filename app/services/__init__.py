# Services package.
#
#   article_service  — ArticleService: article reads, writes, favorites, feeds
#   user_service     — user creation, profiles and follow edges
#
# Services receive an AsyncSession (directly, or through the repositories
# they are built from) so that the router layer controls the transaction
# boundary via the ``get_db`` dependency.  Business-rule failures are
# raised as ``app.exceptions`` errors.
